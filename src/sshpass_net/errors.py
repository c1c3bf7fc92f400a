"""Error kinds raised while handling one invocation."""

from __future__ import annotations


class SshpassError(RuntimeError):
    """Base class for failures that end the invocation with a diagnostic."""

    prefix = "sshpass.net"


class UsageError(SshpassError):
    """Raised for bad flags, a malformed user@host or a missing host/command."""

    pass


class CredentialError(SshpassError):
    """Raised when the password or key cannot be obtained."""

    prefix = "sshpass"


class SSHConnectionError(SshpassError):
    """Raised when an SSH connection cannot be established."""

    pass


class ExecutionError(SshpassError):
    """Raised when the remote command could not be run."""

    pass
