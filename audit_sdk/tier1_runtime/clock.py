"""
audit_sdk.tier1_runtime.clock
──────────────────────────────
Mockable UTC time source. Document timestamps and index buckets are both
derived from "now", so tests freeze or move a Clock instead of patching
datetime.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable


# ── Clock implementation ───────────────────────────────────────────────────

class Clock:
    """Mockable clock. Pass now_fn to control time in tests."""

    def __init__(self, now_fn: Callable[[], datetime] | None = None) -> None:
        self._now_fn = now_fn or (lambda: datetime.now(tz=timezone.utc))

    def now(self) -> datetime:
        """Return the current UTC datetime."""
        return self._now_fn()

    def monotonic(self) -> float:
        """Seconds from a monotonic source, for durations."""
        return time.monotonic()

    def freeze(self, dt: datetime) -> "Clock":
        """Return a new Clock frozen at the given datetime."""
        return Clock(now_fn=lambda: dt)


class MutableClock(Clock):
    """A frozen clock whose time can be moved, e.g. across a bucket boundary."""

    def __init__(self, dt: datetime) -> None:
        self._dt = dt
        super().__init__(now_fn=lambda: self._dt)

    def set(self, dt: datetime) -> None:
        self._dt = dt


# ── Module-level singleton ─────────────────────────────────────────────────

_clock = Clock()


def get_clock() -> Clock:
    """Return the global clock instance."""
    return _clock


def set_clock(clock: Clock) -> None:
    """Replace the global clock (use in tests)."""
    global _clock
    _clock = clock


def now() -> datetime:
    """Return the current UTC datetime."""
    return _clock.now()


def isoformat(dt: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


__all__ = ["Clock", "MutableClock", "get_clock", "set_clock", "now", "isoformat"]
