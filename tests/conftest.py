"""PyTest configuration for pipecollect tests."""

import os
import pytest
from pipecollect.util.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the user's ~/.pipecollect.toml and PIPECOLLECT_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("PIPECOLLECT_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
