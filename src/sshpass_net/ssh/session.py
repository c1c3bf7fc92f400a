"""SSH session management built on Paramiko."""

from __future__ import annotations

import codecs
import sys
import time
from dataclasses import dataclass
from typing import IO, Any, Callable, Dict, Optional

import paramiko

from ..errors import ExecutionError, SSHConnectionError
from ..utils.logging import get_logger
from .credentials import SSHCredentials

logger = get_logger(__name__)

_CHUNK_SIZE = 4096
_POLL_INTERVAL = 0.05


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class SSHSession:
    """High-level wrapper around paramiko.SSHClient, used for a single command."""

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client:
            return
        try:
            self.credentials.validate()
        except ValueError as exc:
            raise SSHConnectionError(str(exc)) from exc
        client = self._client_factory()
        # Host keys are not managed: unknown hosts are accepted.
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        connect_kwargs: Dict[str, Any] = {
            "hostname": self.credentials.host,
            "port": self.credentials.port,
            "username": self.credentials.username,
            "look_for_keys": False,
            "allow_agent": False,
        }
        if self.credentials.timeout is not None:
            connect_kwargs["timeout"] = self.credentials.timeout
        if self.credentials.auth_method == "password":
            connect_kwargs["password"] = self.credentials.password
        elif self.credentials.pkey is not None:
            connect_kwargs["pkey"] = self.credentials.pkey
        else:
            connect_kwargs["key_filename"] = self.credentials.key_path
        try:
            client.connect(**connect_kwargs)
        except Exception as exc:
            client.close()
            raise SSHConnectionError(str(exc) or type(exc).__name__) from exc
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(
        self,
        command: str,
        *,
        stdout_sink: Optional[IO[str]] = None,
        stderr_sink: Optional[IO[str]] = None,
    ) -> SSHCommandResult:
        """
        Execute a command on the remote server and stream its output.

        Args:
            command: The command to execute, passed to the remote shell as is
            stdout_sink: Where remote stdout is written (default: sys.stdout)
            stderr_sink: Where remote stderr is written (default: sys.stderr)

        Returns:
            SSHCommandResult with the full output and exit status

        Note:
            Both streams are drained in the same loop; a command that fills
            its stderr window cannot stall stdout.
        """
        if not self._client:
            self.connect()
        assert self._client is not None
        stdout_sink = stdout_sink if stdout_sink is not None else sys.stdout
        stderr_sink = stderr_sink if stderr_sink is not None else sys.stderr

        try:
            stdin, stdout, _ = self._client.exec_command(command)
            # Nothing is forwarded to the remote stdin; closing it sends EOF.
            stdin.close()
        except Exception as exc:
            raise ExecutionError(str(exc) or type(exc).__name__) from exc

        channel = stdout.channel
        out_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        err_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stdout_chunks = []
        stderr_chunks = []

        def drain() -> bool:
            has_activity = False
            while channel.recv_ready():
                text = out_decoder.decode(channel.recv(_CHUNK_SIZE))
                stdout_chunks.append(text)
                stdout_sink.write(text)
                stdout_sink.flush()
                has_activity = True
            while channel.recv_stderr_ready():
                text = err_decoder.decode(channel.recv_stderr(_CHUNK_SIZE))
                stderr_chunks.append(text)
                stderr_sink.write(text)
                stderr_sink.flush()
                has_activity = True
            return has_activity

        try:
            while not channel.exit_status_ready():
                if not drain():
                    time.sleep(_POLL_INTERVAL)
            drain()
            exit_status = channel.recv_exit_status()
        except (OSError, paramiko.SSHException) as exc:
            raise ExecutionError(str(exc) or type(exc).__name__) from exc

        for decoder, chunks, sink in (
            (out_decoder, stdout_chunks, stdout_sink),
            (err_decoder, stderr_chunks, stderr_sink),
        ):
            tail = decoder.decode(b"", final=True)
            if tail:
                chunks.append(tail)
                sink.write(tail)
                sink.flush()

        logger.info("Remote command exited with status %d", exit_status)
        return SSHCommandResult(
            command=command,
            stdout="".join(stdout_chunks),
            stderr="".join(stderr_chunks),
            exit_status=exit_status,
        )
