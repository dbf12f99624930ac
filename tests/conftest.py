"""Shared test setup."""

import pytest

from relcourse.utils.config import CONFIG_ENV_VAR, set_config


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts from the default configuration."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    set_config(None)
    yield
    set_config(None)
