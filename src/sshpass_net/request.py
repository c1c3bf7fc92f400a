"""Invocation request captured from the command line."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from .errors import UsageError


class CredentialSource(Enum):
    """Where the password or key for the session comes from."""

    STDIN = "stdin"
    KEY = "key"
    FILE = "file"
    PASSWORD = "password"
    ENV = "env"


@dataclass(frozen=True)
class InvocationRequest:
    """Everything one run needs, built once by the argument parser."""

    source: CredentialSource = CredentialSource.STDIN
    secret: str = ""
    user: str = ""
    host: str = ""
    command_tokens: Tuple[str, ...] = ()
    quiet: bool = False
    verbose: bool = False
    show_help: bool = False
    show_version: bool = False
    envvar: str = ""

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"

    @property
    def command(self) -> str:
        return normalize_command(self.command_tokens)


def parse_user_host(value: str) -> Tuple[str, str]:
    """Split ``user@host`` at its single ``@``."""
    parts = value.split("@")
    if len(parts) != 2:
        raise UsageError(
            f"{value} is not the correct format. Host should be formatted as user@host."
        )
    return parts[0], parts[1]


def normalize_command(tokens: Sequence[str]) -> str:
    """Rejoin split command tokens and drop one enclosing pair of single quotes.

    The tokens are joined verbatim with single spaces. Quotes are stripped
    only when the joined command both starts and ends with ``'``.
    """
    command = " ".join(tokens)
    if len(command) >= 2 and command[0] == "'" and command[-1] == "'":
        command = command[1:-1]
    return command
