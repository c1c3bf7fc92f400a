"""SSH utilities for sshpass.net."""

from .credentials import SSHCredentials, load_private_key
from .session import SSHCommandResult, SSHSession

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHSession",
    "load_private_key",
]
