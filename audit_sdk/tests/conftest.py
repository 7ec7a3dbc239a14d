"""
audit_sdk test configuration.

All tests run against the in-memory backend; no Elasticsearch is required.
Override by setting environment variables before running pytest.
"""
from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

# ── Force the memory backend for all tests ────────────────────────────────
# These must be set before any audit_sdk modules are imported.

os.environ.setdefault("AUDIT_BACKEND", "memory")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUDIT_LOG_LEVEL", "WARNING")


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_module_singletons():
    """
    Reset cached settings, backend and clock between tests.
    This ensures each test gets fresh state with no bleed.
    """
    import audit_sdk.tier0_core.config as _config
    import audit_sdk.tier1_runtime.clock as _clock
    import audit_sdk.tier2_reliability.backend as _backend

    orig_clock = _clock._clock
    _config._reset_settings()
    _backend._reset_backend()

    yield

    _clock._clock = orig_clock
    _config._reset_settings()
    _backend._reset_backend()


@pytest.fixture
def boundary_instant():
    """The last millisecond of September 2020 (end of Q3 and of H2's first half)."""
    return datetime(2020, 9, 30, 23, 59, 59, 999000, tzinfo=timezone.utc)


@pytest.fixture
def memory_backend():
    """Return a fresh MemoryIndexBackend."""
    from audit_sdk.tier2_reliability.backend import MemoryIndexBackend
    return MemoryIndexBackend()


@pytest.fixture
def clock(boundary_instant):
    """A movable clock starting at boundary_instant."""
    from audit_sdk.tier1_runtime.clock import MutableClock
    return MutableClock(boundary_instant)
