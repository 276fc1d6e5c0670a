from __future__ import annotations

import pytest

from pveqemu.config import (
    CodecConfig,
    DefaultsConfig,
    RetryConfig,
    Settings,
    get_settings,
    load_settings,
    write_settings,
)


def test_settings_roundtrip(tmp_path):
    """Test written settings load back unchanged."""
    path = tmp_path / "config.toml"
    settings = Settings(
        retry=RetryConfig(max_attempts=4, delay=2.5, deadline=60),
        codec=CodecConfig(strict=True, locally_administered_macs=True),
        defaults=DefaultsConfig(node="pve2", cpu="kvm64"),
    )
    write_settings(settings, path)

    loaded = load_settings(path)
    assert loaded == settings


def test_defaults_without_config_file():
    """Test defaults apply without a config file."""
    settings = get_settings()
    assert settings.retry.max_attempts == 3
    assert settings.retry.delay == 8.0
    assert settings.retry.deadline is None
    assert settings.codec.strict is False
    assert settings.codec.locally_administered_macs is False
    assert settings.defaults.node == "pve"
    assert settings.defaults.cpu == "host"


def test_env_var_selects_config(tmp_path, monkeypatch):
    """Test PVEQEMU_CONFIG selects the config file."""
    path = tmp_path / "custom.toml"
    write_settings(Settings(codec=CodecConfig(strict=True)), path)
    monkeypatch.setenv("PVEQEMU_CONFIG", str(path))

    assert get_settings().codec.strict is True


def test_env_var_pointing_to_missing_file(tmp_path, monkeypatch):
    """Test PVEQEMU_CONFIG pointing nowhere is an error."""
    monkeypatch.setenv("PVEQEMU_CONFIG", str(tmp_path / "missing.toml"))

    with pytest.raises(FileNotFoundError, match="PVEQEMU_CONFIG"):
        get_settings()


def test_invalid_toml(tmp_path):
    """Test invalid TOML is reported with the path."""
    path = tmp_path / "config.toml"
    path.write_text("[retry\nmax_attempts = 3\n")

    with pytest.raises(ValueError, match="Invalid TOML"):
        load_settings(path)


def test_unknown_keys_are_rejected(tmp_path):
    """Test unknown keys fail validation."""
    path = tmp_path / "config.toml"
    path.write_text("[retry]\nattempts = 3\n")

    with pytest.raises(ValueError, match="Invalid config file"):
        load_settings(path)
