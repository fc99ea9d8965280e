"""Pytest configuration and fixtures."""

import shutil
import tempfile
from pathlib import Path

import pytest

from helpers import FakeClock, MockBackend


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test artifacts."""
    dirpath = tempfile.mkdtemp()
    yield Path(dirpath)
    shutil.rmtree(dirpath, ignore_errors=True)


@pytest.fixture
def config_dir(monkeypatch, temp_dir):
    """Point the config loader at an empty temporary config directory."""
    config_home = temp_dir / "opencode"
    config_home.mkdir()
    monkeypatch.setattr("agent_notify.config.CONFIG_DIR", config_home)
    return config_home


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def clock():
    return FakeClock()
