"""Shared paths helpers for config and logging."""

from __future__ import annotations

import os
from pathlib import Path

from tacoshell.errors import ConfigError

_HOME_TOKEN = "%{TACOSHELL_HOME}"
_HOME_ENV = "TACOSHELL_HOME"
_DEFAULT_HOME = Path("~/.config/tacoshell")


def _candidate_from_env() -> Path | None:
    env_value = os.getenv(_HOME_ENV)
    if not env_value:
        return None
    expanded = Path(env_value).expanduser().resolve()
    if not expanded.exists():
        raise ConfigError(
            f"Environment variable {_HOME_ENV} points to a non-existent path: {expanded}"
        )
    return expanded


def tacoshell_home() -> Path:
    """Locate the tacoshell home directory.

    Resolution order:
    1. Explicit ``TACOSHELL_HOME`` env var, if present. It must exist.
    2. ``~/.config/tacoshell``, whether or not it exists yet.
    """

    env_candidate = _candidate_from_env()
    if env_candidate:
        return env_candidate
    return _DEFAULT_HOME.expanduser()


def default_config_path() -> Path:
    return tacoshell_home() / "config.json"


def expand_home(value: str | Path | None) -> str | Path | None:
    """Expand %{TACOSHELL_HOME} placeholders and ``~`` in configuration inputs."""

    if value is None:
        return None

    text = str(value)
    if _HOME_TOKEN in text:
        text = text.replace(_HOME_TOKEN, str(tacoshell_home()))
    text = os.path.expanduser(text)
    return Path(text) if isinstance(value, Path) else text


__all__ = ["default_config_path", "expand_home", "tacoshell_home"]
