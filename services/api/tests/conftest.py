"""
Shared fixtures: an in-memory grid and a controllable clock.

Run with: pytest tests/ -v
"""
import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.memory import MemoryTransport
from core.schema import SchemaRegistry

DOC = "doc-test"
# Wednesday
NOW = datetime(2025, 1, 15, 10, 0, 0)


class FakeClock:
    """Wall clock the tests move by hand."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeTimer:
    """Monotonic seconds for TTL caches."""

    def __init__(self):
        self.t = 0.0

    def __call__(self) -> float:
        return self.t


@pytest.fixture
def transport():
    return MemoryTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return SchemaRegistry()


@pytest.fixture
def documents():
    return {
        "delegation": "doc-delegation",
        "users": "doc-users",
        "todos": "doc-todos",
        "checklists": "doc-checklists",
    }
