"""Shared fixtures."""

import pytest

from iafront_client import config as config_module
from iafront_client.config import ConfigManager


@pytest.fixture
def config_manager(tmp_path, monkeypatch):
    """ConfigManager in a temporary home, also installed as the global instance."""
    monkeypatch.setenv(config_module.HOME_ENV_VAR, str(tmp_path / "home"))
    manager = ConfigManager()
    monkeypatch.setattr(config_module, "_config_manager", manager)
    return manager
