"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import paramiko

from ..errors import CredentialError


@dataclass(frozen=True)
class SSHCredentials:
    """Normalized credential payload handed to the session."""

    host: str
    username: str
    port: int = 22
    auth_method: str = "password"
    password: Optional[str] = None
    key_path: Optional[str] = None
    pkey: Optional[paramiko.PKey] = None
    timeout: Optional[float] = None

    def validate(self) -> None:
        # An empty password is accepted, only a missing one is not.
        if self.auth_method == "password":
            if self.password is None:
                raise ValueError("Password authentication selected but no password provided")
            if self.pkey is not None or self.key_path:
                raise ValueError("Password authentication selected but a key was also provided")
        elif self.auth_method == "key":
            if self.pkey is None and not self.key_path:
                raise ValueError("Key authentication selected but no key provided")
            if self.password is not None:
                raise ValueError("Key authentication selected but a password was also provided")
        else:
            raise ValueError(f"Unknown authentication method: {self.auth_method}")


def load_private_key(path: Union[str, Path]) -> paramiko.PKey:
    """Load a private key of any type paramiko understands.

    Encrypted keys are rejected since no passphrase is ever asked for.
    """
    try:
        return paramiko.PKey.from_path(Path(path))
    except Exception as exc:
        raise CredentialError(str(exc) or f"Could not load private key {path}") from exc
