import json
import logging
import os
from typing import Any, Dict, Optional

from tacoshell.errors import ConfigError
from tacoshell.utils import paths

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "ssh_config": "~/.ssh/config",
    "term": "xterm-256color",
    "connect_timeout": 10,
    "keepalive_interval": 0,
    "strict_host_key_checking": False,
    "known_hosts": "~/.ssh/known_hosts",
    "log_file": None,
    "log_retention_days": 7,
}

_PATH_KEYS = {"ssh_config", "known_hosts", "log_file"}


class Config:

    def __init__(self, config_file_path: Optional[str] = None):
        if config_file_path is None:
            config_file_path = str(paths.default_config_path())
        self.config_file_path = os.path.abspath(os.path.expanduser(config_file_path))
        self.config_data = dict(DEFAULTS)

        if not os.path.exists(self.config_file_path):
            logger.debug("No settings file at %s, using defaults", self.config_file_path)
            return

        try:
            with open(self.config_file_path, "r", encoding="utf-8") as file:
                loaded = json.load(file)
        except json.JSONDecodeError as exc:
            raise ConfigError(
                f"Invalid JSON in {self.config_file_path}: {exc}"
            ) from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read {self.config_file_path}: {exc}") from exc

        if not isinstance(loaded, dict):
            raise ConfigError(
                f"Expected a JSON object at the top of {self.config_file_path}"
            )
        for key, value in loaded.items():
            if key not in DEFAULTS:
                logger.warning("Ignoring unknown setting %r in %s", key, self.config_file_path)
                continue
            self.config_data[key] = value

    def data(self):
        return self.config_data

    def get_path(self, key: str) -> Optional[str]:
        value = self.config_data.get(key)
        if value is None or value == "":
            return None
        return os.path.normpath(str(paths.expand_home(str(value))))

    def get_int(self, key: str) -> int:
        value = self.config_data.get(key)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Setting {key!r} must be an integer, got {value!r}") from exc

    def get_bool(self, key: str) -> bool:
        value = self.config_data.get(key)
        if isinstance(value, bool):
            return value
        raise ConfigError(f"Setting {key!r} must be true or false, got {value!r}")

    def get_str(self, key: str) -> str:
        value = self.config_data.get(key)
        if key in _PATH_KEYS:
            return self.get_path(key) or ""
        if isinstance(value, str):
            return value
        raise ConfigError(f"Setting {key!r} must be a string, got {value!r}")
