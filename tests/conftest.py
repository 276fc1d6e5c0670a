from __future__ import annotations

import pytest

from pveqemu.config import get_settings


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("PVEQEMU_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("LOGLEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
