"""Shared fixtures for RefBridge tests."""

import pytest

from refbridge.refs.registry import ElementRegistry
from refbridge.types import BridgeConfig


@pytest.fixture(autouse=True)
def _no_bridge_env(monkeypatch):
    """Keep BRIDGE_* variables from the developer's shell out of the tests."""
    for name in ("BRIDGE_MAX_DEPTH", "BRIDGE_MAX_SIBLINGS", "BRIDGE_MAX_DESCENDANTS", "BRIDGE_MAX_OUTLINE_ITEMS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def registry():
    return ElementRegistry(role="default")


@pytest.fixture
def bridge_config():
    return BridgeConfig()
