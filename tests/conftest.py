from __future__ import annotations

import pytest

import surveyor_cache.schemas as schemas_module

# 2027-01-15T08:00:00Z
CLOCK_START = 1_800_000_000.0


@pytest.fixture
def clock(monkeypatch):
    state = {"now": CLOCK_START}
    monkeypatch.setattr(schemas_module.time, "time", lambda: state["now"])
    return state
