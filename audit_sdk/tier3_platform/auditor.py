"""
audit_sdk.tier3_platform.auditor
─────────────────────────────────
RequestAuditor wires the pipeline together for a host server:

    transaction = auditor.on_transaction_start(request)
    ...                                   # host handles the request
    auditor.on_transaction_end(transaction, response, error=exc)

on_transaction_end() schedules delivery as a background task and returns
immediately; the host never waits on the indexing backend. Each auditor
owns one IndexLifecycleCache for its lifetime unless one is injected.

None of the host hooks raise. A failure while capturing or scheduling is
logged as "audit.capture_failed", counted as a dropped document, and the
transaction goes unrecorded.

Usage::

    auditor = RequestAuditor({
        "index_prefix": "prod",
        "index_suffix_by": "month",
        "censor": ["card.number", "items.*.secret"],
    })
    ...
    await auditor.aclose()                # on shutdown
"""
from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from audit_sdk.tier0_core.config import AuditSettings, build_config, get_settings
from audit_sdk.tier0_core.logging import get_logger
from audit_sdk.tier0_core.metrics import documents_dropped
from audit_sdk.tier1_runtime.buckets import IndexNameResolver
from audit_sdk.tier1_runtime.clock import Clock, get_clock
from audit_sdk.tier1_runtime.context import Transaction
from audit_sdk.tier2_reliability.backend import (
    ElasticsearchBackend,
    IndexBackend,
    get_backend,
)
from audit_sdk.tier2_reliability.lifecycle import IndexLifecycleCache
from audit_sdk.tier2_reliability.sink import Sink
from audit_sdk.tier3_platform.document import DocumentBuilder

log = get_logger(__name__)


def _capture_failed(stage: str, exc: Exception, **fields: Any) -> None:
    documents_dropped(reason="capture_failed").inc()
    log.error(
        "audit.capture_failed",
        stage=stage,
        error=str(exc),
        error_type=type(exc).__name__,
        **fields,
    )


class RequestAuditor:
    def __init__(
        self,
        options: dict[str, Any] | None = None,
        backend: IndexBackend | None = None,
        *,
        lifecycle: IndexLifecycleCache | None = None,
        clock: Clock | None = None,
        settings: AuditSettings | None = None,
    ) -> None:
        options = options or {}
        self.settings = settings or get_settings()
        self.config = build_config(options, self.settings)
        self._clock = clock

        # only a backend built here is closed by aclose()
        self._owns_backend = False
        if backend is None:
            if "host" in options:
                backend = ElasticsearchBackend(self.config.host)
                self._owns_backend = True
            else:
                backend = get_backend()
        self.backend = backend

        self.resolver = IndexNameResolver(
            prefix=self.config.index_prefix,
            unit=self.config.index_suffix_by,
            index=self.config.index,
            clock=clock,
        )
        self.builder = DocumentBuilder(
            self.config.whitelist,
            self.config.censor,
            env=self.settings.environment,
            clock=clock,
        )
        if lifecycle is None:
            lifecycle = IndexLifecycleCache(self.config.ensure_timeout)
        self.lifecycle = lifecycle
        self.sink = Sink(
            self.backend,
            self.lifecycle,
            index_settings=self.config.index_settings,
            mapping=self.config.mapping,
        )
        self._pending: set[asyncio.Task] = set()

    @property
    def clock(self) -> Clock:
        return self._clock or get_clock()

    # ── Host hooks ────────────────────────────────────────────────────────────

    def on_transaction_start(self, request: Any) -> Transaction:
        """
        Capture the request and pick the target index for this moment.
        If capture fails the returned transaction is already skipped.
        """
        started = self.clock.monotonic()
        try:
            now = self.clock.now()
            return Transaction(
                document=self.builder.start(request, now=now),
                index=self.resolver.resolve(now),
                started=started,
            )
        except Exception as exc:
            _capture_failed("start", exc)
            return Transaction(document={}, index="", started=started, skip=True)

    def attach_body(self, transaction: Transaction, body: Any) -> None:
        if transaction.skip:
            return
        try:
            self.builder.attach_body(transaction.document, body)
        except Exception as exc:
            _capture_failed("body", exc, index=transaction.index)
            transaction.skip = True

    def on_transaction_end(
        self,
        transaction: Transaction,
        response: Any,
        error: BaseException | Mapping[str, Any] | None = None,
        route: str | None = None,
    ) -> asyncio.Task | None:
        """
        Complete the document and schedule its delivery. Returns the
        delivery task, or None when the transaction is skipped, was already
        emitted, or could not be captured.
        """
        if transaction.emitted:
            return None
        transaction.emitted = True
        if transaction.skip:
            log.debug("audit.skipped", index=transaction.index)
            return None

        try:
            loop = asyncio.get_running_loop()
            self.builder.finish(
                transaction.document,
                response,
                error=error if error is not None else transaction.error,
                route=route,
                duration_ms=(self.clock.monotonic() - transaction.started) * 1000,
            )
        except Exception as exc:
            _capture_failed("end", exc, index=transaction.index)
            return None

        task = loop.create_task(self.sink.emit(transaction.document, transaction.index))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        """Drain pending deliveries, then close a backend this auditor created."""
        await self.drain()
        if self._owns_backend:
            await self.backend.aclose()


__all__ = ["RequestAuditor"]
