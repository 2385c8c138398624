"""Shared pytest configuration for lse tests."""

from __future__ import annotations

import sys

import pytest

from lse.config import LseConfig
from lse.events import EventBus
from lse.mocks import MockClock, MockFileSystem, MockProcessLauncher


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def fs():
    return MockFileSystem()


@pytest.fixture
def launcher():
    return MockProcessLauncher()


@pytest.fixture
def config(tmp_path):
    """Config whose tool command resolves to an existing executable."""
    return LseConfig(tool_command=[sys.executable, "-m", "lumi_tester"], run_dir=str(tmp_path))


@pytest.fixture
def recorded_bus():
    """EventBus plus the list every published event is appended to."""
    bus = EventBus()
    events: list = []
    bus.subscribe(events.append)
    return bus, events
