"""Fixtures shared by the test modules."""

from __future__ import annotations

import pytest
from helpers import FakeClock, FakeSink, MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()
