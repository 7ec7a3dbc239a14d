"""
audit_sdk.tier2_reliability.lifecycle
──────────────────────────────────────
Per-index readiness cache. Before the first document lands in a bucket the
index must be created (or its mapping updated). Requests race into a fresh
bucket, so the ensure step is shared: the first caller starts it as a task,
every later caller awaits that same task, and nobody runs it twice.

    unknown ──► ensuring ──► ready        (ready is terminal)
                   │
                   └── failure ──► unknown (next request may try again)

All state lives on one event loop and every check-then-act sequence runs
without an intervening await, so no lock is needed. A multi-threaded host
must give each loop its own cache.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from audit_sdk.tier0_core.errors import IndexEnsureError

EnsureFn = Callable[[str], Awaitable[object]]


class IndexStatus(str, Enum):
    UNKNOWN = "unknown"
    ENSURING = "ensuring"
    READY = "ready"


class IndexLifecycleCache:
    """
    Tracks which indices have been ensured and deduplicates concurrent
    ensure operations.

    ensure_timeout: seconds before an in-flight ensure is cancelled and the
    index reverts to unknown. None (default) waits indefinitely, so a hung
    backend stalls every writer of that bucket until it answers.
    """

    def __init__(self, ensure_timeout: float | None = None) -> None:
        self._ready: set[str] = set()
        self._inflight: dict[str, asyncio.Task] = {}
        self.ensure_timeout = ensure_timeout

    def status(self, key: str) -> IndexStatus:
        if key in self._ready:
            return IndexStatus.READY
        if key in self._inflight:
            return IndexStatus.ENSURING
        return IndexStatus.UNKNOWN

    def is_ready(self, key: str) -> bool:
        return key in self._ready

    async def ensure_ready(self, key: str, ensure_fn: EnsureFn) -> None:
        """
        Return once *key* is ready, running *ensure_fn(key)* at most once
        across all concurrent callers. A failed ensure raises in every
        waiter and leaves the key unknown.
        """
        if key in self._ready:
            return
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, ensure_fn))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        # shield: a cancelled waiter must not cancel the shared ensure
        await asyncio.shield(task)

    async def _run(self, key: str, ensure_fn: EnsureFn) -> None:
        try:
            if self.ensure_timeout is None:
                await ensure_fn(key)
            else:
                await asyncio.wait_for(ensure_fn(key), self.ensure_timeout)
        except asyncio.TimeoutError as exc:
            raise IndexEnsureError(
                f"ensure of {key} exceeded {self.ensure_timeout}s",
                code="index_ensure_timeout",
                index=key,
            ) from exc
        else:
            self._ready.add(key)
        finally:
            self._inflight.pop(key, None)


def _consume_exception(task: asyncio.Task) -> None:
    # waiters may all be gone; mark the outcome as retrieved
    if not task.cancelled():
        task.exception()


__all__ = ["IndexStatus", "IndexLifecycleCache", "EnsureFn"]
