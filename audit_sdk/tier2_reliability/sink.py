"""
audit_sdk.tier2_reliability.sink
─────────────────────────────────
Best-effort delivery of one audit document: make sure the target index is
ready (shared through the lifecycle cache), then issue a single write.

Every failure stops here. It is logged and counted, the document is
discarded, and emit() returns False. Nothing is retried, buffered or raised
into the host request path.
"""
from __future__ import annotations

from typing import Any

from audit_sdk.tier0_core.errors import IndexEnsureError
from audit_sdk.tier0_core.logging import get_logger
from audit_sdk.tier0_core.metrics import (
    documents_dropped,
    documents_written,
    index_ensures,
)
from audit_sdk.tier2_reliability.backend import IndexBackend
from audit_sdk.tier2_reliability.lifecycle import IndexLifecycleCache

log = get_logger(__name__)


class Sink:
    def __init__(
        self,
        backend: IndexBackend,
        lifecycle: IndexLifecycleCache,
        *,
        index_settings: dict[str, Any],
        mapping: dict[str, Any],
    ) -> None:
        self.backend = backend
        self.lifecycle = lifecycle
        self.index_settings = index_settings
        self.mapping = mapping

    async def ensure_index(self, index: str) -> bool:
        """
        Create *index* with settings and mapping, or update the mapping if
        it already exists. Returns whether the index existed before.
        """
        try:
            existed = await self.backend.index_exists(index)
            if existed:
                await self.backend.update_mapping(index, self.mapping)
            else:
                await self.backend.create_index(index, self.index_settings, self.mapping)
        except Exception as exc:
            index_ensures(outcome="failure").inc()
            raise IndexEnsureError(
                f"could not ensure index {index}: {exc}", index=index
            ) from exc

        index_ensures(outcome="updated" if existed else "created").inc()
        log.info("audit.index_ensured", index=index, created=not existed)
        return existed

    async def emit(self, document: dict[str, Any], index: str) -> bool:
        """Write *document* to *index*. Returns True if the backend accepted it."""
        try:
            await self.lifecycle.ensure_ready(index, self.ensure_index)
        except Exception as exc:
            documents_dropped(reason="ensure_failed").inc()
            log.error(
                "audit.document_dropped",
                reason="ensure_failed",
                index=index,
                error=str(exc),
            )
            return False

        try:
            await self.backend.write_document(index, document)
        except Exception as exc:
            documents_dropped(reason="write_failed").inc()
            log.error(
                "audit.document_dropped",
                reason="write_failed",
                index=index,
                error=str(exc),
            )
            return False

        documents_written().inc()
        return True


__all__ = ["Sink"]
