"""Credential resolution and the single-command session run."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import IO, Callable, Optional

import paramiko

from .config import ToolConfig
from .errors import CredentialError
from .request import CredentialSource, InvocationRequest
from .ssh import SSHCommandResult, SSHCredentials, SSHSession, load_private_key
from .utils.logging import get_logger

logger = get_logger(__name__)


def read_password_file(path: str) -> str:
    """Return the first line of `path`, without its line terminator."""
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise CredentialError(str(exc)) from exc
    if not lines:
        raise CredentialError(f"File {path} had no data.")
    return lines[0]


class SessionRunner:
    """Turns an invocation request into one authenticated command run."""

    def __init__(
        self,
        config: Optional[ToolConfig] = None,
        *,
        session_factory: Callable[[SSHCredentials], SSHSession] = SSHSession,
        key_loader: Callable[[Path], paramiko.PKey] = load_private_key,
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
        stderr: Optional[IO[str]] = None,
    ) -> None:
        self.config = config or ToolConfig()
        self._session_factory = session_factory
        self._key_loader = key_loader
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr

    @property
    def stdin(self) -> IO[str]:
        return self._stdin if self._stdin is not None else sys.stdin

    @property
    def stdout(self) -> IO[str]:
        return self._stdout if self._stdout is not None else sys.stdout

    @property
    def stderr(self) -> IO[str]:
        return self._stderr if self._stderr is not None else sys.stderr

    def resolve_credentials(self, request: InvocationRequest) -> SSHCredentials:
        """Obtain the password or key selected by the request."""
        base = {
            "host": request.host,
            "username": request.user,
            "port": self.config.port,
            "timeout": self.config.connect_timeout,
        }
        source = request.source

        if source is CredentialSource.STDIN:
            if not request.quiet:
                self.stderr.write(f"{request.target}'s password: ")
                self.stderr.flush()
            # EOF or a blank line both mean an empty password.
            password = self.stdin.readline().rstrip("\r\n")
            logger.info("Password authentication type added from stdin.")
            return SSHCredentials(auth_method="password", password=password, **base)

        if source is CredentialSource.KEY:
            key_path = Path(request.secret).expanduser() if request.secret else self.config.key_path()
            pkey = self._key_loader(key_path)
            logger.info("Key authentication type added from %s.", key_path)
            return SSHCredentials(
                auth_method="key", key_path=str(key_path), pkey=pkey, **base
            )

        if source is CredentialSource.FILE:
            password = read_password_file(request.secret)
            logger.info("Password authentication type added from file.")
            return SSHCredentials(auth_method="password", password=password, **base)

        if source is CredentialSource.ENV:
            logger.info("Password authentication type added from %s.", request.envvar)
        else:
            logger.info("Password authentication type added from command line.")
        return SSHCredentials(auth_method="password", password=request.secret, **base)

    def run(self, request: InvocationRequest) -> SSHCommandResult:
        credentials = self.resolve_credentials(request)
        command = request.command
        logger.info("Connecting to %s port %d", request.target, credentials.port)
        with self._session_factory(credentials) as session:
            logger.info("Running remote command: %s", command)
            return session.run(command, stdout_sink=self.stdout, stderr_sink=self.stderr)
