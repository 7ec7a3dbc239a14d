"""
audit_sdk.tier0_core.metrics
─────────────────────────────
Prometheus counters for the audit pipeline. Dropped documents never reach
the host application; these counters are where they show up.

Minimal stack: prometheus-client
Configure via: APP_NAME, APP_ENV (standard labels)
"""
from __future__ import annotations

import os
from typing import Callable

from prometheus_client import Counter

# Standard labels applied to every metric
_DEFAULT_LABELS = ["service", "env"]
_SERVICE = os.getenv("APP_NAME", "audit")
_ENV = os.getenv("APP_ENV", "development")
_DEFAULT_LABEL_VALUES = {"service": _SERVICE, "env": _ENV}


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a counter with standard labels. Call once per metric name.

    Usage:
        dropped = counter("audit_documents_dropped_total", "Dropped", ["reason"])
        dropped(reason="write_failed").inc()
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    c = Counter(name, description, all_labels)

    def _counter(**extra_labels: str) -> Counter:
        return c.labels(**_DEFAULT_LABEL_VALUES, **extra_labels)

    return _counter


# ── Pipeline metrics ──────────────────────────────────────────────────────────

documents_written = counter(
    "audit_documents_written_total",
    "Audit documents accepted by the indexing backend",
)
documents_dropped = counter(
    "audit_documents_dropped_total",
    "Audit documents discarded after a pipeline failure",
    ["reason"],
)
index_ensures = counter(
    "audit_index_ensure_total",
    "Index create/update-mapping operations by outcome",
    ["outcome"],
)


__all__ = ["counter", "documents_written", "documents_dropped", "index_ensures"]
