import json
import logging
from pathlib import Path

import pytest


def test_missing_settings_file_uses_defaults(tmp_path: Path):
    from tacoshell.utils.config import Config

    config = Config(str(tmp_path / "absent.json"))
    assert config.get_int("connect_timeout") == 10
    assert config.get_int("keepalive_interval") == 0
    assert config.get_bool("strict_host_key_checking") is False
    assert config.get_str("term") == "xterm-256color"
    assert config.get_path("log_file") is None


def test_settings_override_defaults_and_ignore_unknown(tmp_path: Path, caplog):
    from tacoshell.utils.config import Config

    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"connect_timeout": 3, "term": "vt100", "colour": "blue"}),
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING):
        config = Config(str(path))
    assert config.get_int("connect_timeout") == 3
    assert config.get_str("term") == "vt100"
    assert "colour" not in config.data()
    assert any("colour" in record.getMessage() for record in caplog.records)


def test_default_settings_path_follows_home(isolated_home: Path):
    from tacoshell.utils.config import Config

    config = Config()
    assert config.config_file_path == str(isolated_home / "config.json")
    assert config.get_path("ssh_config") == str(isolated_home / "ssh_config")


def test_invalid_json_raises(tmp_path: Path):
    from tacoshell.errors import ConfigError
    from tacoshell.utils.config import Config

    path = tmp_path / "config.json"
    path.write_text("{not valid json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        Config(str(path))


def test_non_object_root_raises(tmp_path: Path):
    from tacoshell.errors import ConfigError
    from tacoshell.utils.config import Config

    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError, match="JSON object"):
        Config(str(path))


def test_typed_getters_reject_bad_values(tmp_path: Path):
    from tacoshell.errors import ConfigError
    from tacoshell.utils.config import Config

    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"connect_timeout": "soon", "strict_host_key_checking": "yes"}),
        encoding="utf-8",
    )
    config = Config(str(path))
    with pytest.raises(ConfigError, match="connect_timeout"):
        config.get_int("connect_timeout")
    with pytest.raises(ConfigError, match="strict_host_key_checking"):
        config.get_bool("strict_host_key_checking")


def test_get_str_rejects_non_strings(tmp_path: Path):
    from tacoshell.errors import ConfigError
    from tacoshell.utils.config import Config

    path = tmp_path / "config.json"
    path.write_text(json.dumps({"term": None}), encoding="utf-8")
    with pytest.raises(ConfigError, match="'term' must be a string"):
        Config(str(path)).get_str("term")


def test_home_env_must_exist(tmp_path: Path, monkeypatch):
    from tacoshell.errors import ConfigError
    from tacoshell.utils import paths
    from tacoshell.utils.config import Config

    monkeypatch.setenv("TACOSHELL_HOME", str(tmp_path / "missing"))
    with pytest.raises(ConfigError, match="TACOSHELL_HOME"):
        paths.tacoshell_home()
    with pytest.raises(ConfigError, match="TACOSHELL_HOME"):
        Config()


def test_expand_home_token(isolated_home: Path):
    from tacoshell.utils import paths

    assert paths.expand_home("%{TACOSHELL_HOME}/logs/t.log") == f"{isolated_home}/logs/t.log"
    assert paths.expand_home(Path("plain")) == Path("plain")
    assert paths.expand_home(None) is None
