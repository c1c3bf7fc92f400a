"""Configuration loading utilities for sshpass.net."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import UsageError


def load_env_file() -> bool:
    """Load a ``.env`` file found from the working directory upward.

    Variables already present in the environment win.
    """
    return load_dotenv(find_dotenv(usecwd=True))


# Load .env file if it exists
load_env_file()

_DEFAULT_CONFIG_PATH = Path("~/.config/sshpass-net/config.json")

DEFAULT_ENVVAR = "SSHPASS"


@dataclass
class ToolConfig:
    """Defaults applied when the command line leaves something unspecified."""

    port: int = 22
    default_envvar: str = DEFAULT_ENVVAR
    default_key_path: Optional[str] = None
    connect_timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ToolConfig":
        known = {f.name for f in fields(cls)}
        # Keys starting with "_" are comments
        values = {k: v for k, v in payload.items() if k in known and not k.startswith("_")}
        return cls(**{**cls().__dict__, **values})

    def key_path(self) -> Path:
        """Private key used when ``--key`` is given without a path."""
        if self.default_key_path:
            return Path(self.default_key_path).expanduser()
        return Path.home() / ".ssh" / "id_rsa"


def load_config(path: Optional[str] = None) -> ToolConfig:
    """Load configuration from `path`, ``$SSHPASS_NET_CONFIG`` or the default location.

    A missing file is not an error: built-in defaults are used instead.

    Environment variables (higher priority than config file):
    - SSHPASS_NET_PORT: SSH port
    - SSHPASS_NET_ENVVAR: Variable read by a bare ``-e``
    - SSHPASS_NET_KEY_PATH: Private key read by a bare ``-k``
    """
    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    env_path = os.getenv("SSHPASS_NET_CONFIG")
    if env_path:
        candidate_paths.append(Path(env_path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    config = ToolConfig()
    for candidate in candidate_paths:
        candidate = candidate.expanduser()
        if candidate.is_file():
            try:
                with candidate.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
                if not isinstance(data, dict):
                    raise ValueError("top-level value must be an object")
                config = ToolConfig.from_dict(data)
            except (OSError, ValueError, TypeError) as exc:
                raise UsageError(f"Failed to load config '{candidate}': {exc}") from exc
            break

    env_port = os.getenv("SSHPASS_NET_PORT")
    if env_port:
        try:
            config.port = int(env_port)
        except ValueError as exc:
            raise UsageError(f"SSHPASS_NET_PORT must be an integer, got {env_port!r}") from exc

    env_envvar = os.getenv("SSHPASS_NET_ENVVAR")
    if env_envvar:
        config.default_envvar = env_envvar

    env_key_path = os.getenv("SSHPASS_NET_KEY_PATH")
    if env_key_path:
        config.default_key_path = env_key_path

    return config
