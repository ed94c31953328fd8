"""
Tests for configuration loading.
"""

import pytest

from volunteer_manager.auth import hash_key
from volunteer_manager.config import PortalConfig, create_default_config, load_config


def test_defaults():
    config = PortalConfig.default()

    assert config.server.port == 8000
    assert config.logging.level == "INFO"
    assert config.actions.invalid_request_status == 500
    assert config.actions.surface_write_log_errors is False
    assert config.api_keys == []


def test_load_config(tmp_path):
    config_path = tmp_path / "volunteer-manager.toml"
    config_path.write_text(
        f"""
[server]
port = 9000

[logging]
level = "debug"

[actions]
invalid_request_status = 400

[[api_keys]]
key_hash = "{hash_key('key').upper()}"
user_id = 1
username = "admin"
privileges = ["event-administrator"]
""",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.server.port == 9000
    assert config.logging.level == "DEBUG"
    assert config.actions.invalid_request_status == 400
    assert config.api_keys[0].key_hash == hash_key("key")
    assert config.api_keys[0].privileges == ["event-administrator"]


def test_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.toml")


def test_invalid_toml(tmp_path):
    config_path = tmp_path / "volunteer-manager.toml"
    config_path.write_text("[server\nport = 1", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(config_path)


def test_invalid_request_status_must_be_400_or_500(tmp_path):
    config_path = tmp_path / "volunteer-manager.toml"
    config_path.write_text("[actions]\ninvalid_request_status = 422\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(config_path)


def test_key_hashes_must_be_hex(tmp_path):
    config_path = tmp_path / "volunteer-manager.toml"
    config_path.write_text(
        f'[[api_keys]]\nkey_hash = "{"z" * 64}"\nuser_id = 1\nusername = "admin"\n',
        encoding="utf-8",
    )

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(config_path)


def test_duplicate_api_keys_are_rejected():
    key = {"key_hash": hash_key("key"), "user_id": 1, "username": "admin"}

    with pytest.raises(ValueError, match="Duplicate API key"):
        PortalConfig(api_keys=[key, {**key, "user_id": 2}])


def test_default_config_template_loads(tmp_path):
    config_path = tmp_path / "volunteer-manager.toml"
    create_default_config(config_path)

    config = load_config(config_path)

    assert config.server.host == "127.0.0.1"
    assert config.actions.invalid_request_status == 500
    assert config.actions.log_errors is True
    assert config.api_keys == []
