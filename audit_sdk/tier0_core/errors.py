"""
audit_sdk.tier0_core.errors
────────────────────────────
Error taxonomy for the audit pipeline. Every error has a stable
machine-readable code. Pipeline errors are raised inside the SDK and caught
at the sink boundary: they are logged and counted, never re-raised into the
host request path.

Only ConfigurationError is meant to reach application code, and only at
construction time.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class AuditError(Exception):
    """
    Base class for all audit SDK errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - detail: internal context for logs
    - metadata: structured fields attached to the log event
    """

    code: str = "audit_error"

    def __init__(
        self,
        detail: str = "Audit pipeline failure.",
        code: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.detail = detail
        self.metadata = metadata
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                **self.metadata,
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class ConfigurationError(AuditError):
    """Invalid logger options detected at construction time."""
    code = "configuration_error"


class BackendError(AuditError):
    """The indexing backend rejected a call or could not be reached."""
    code = "backend_error"

    def __init__(
        self,
        detail: str = "Indexing backend call failed.",
        code: str | None = None,
        status_code: int | None = None,
        **metadata: Any,
    ) -> None:
        self.status_code = status_code
        super().__init__(detail, code, **metadata)


class IndexEnsureError(AuditError):
    """Creating an index or updating its mapping failed or timed out."""
    code = "index_ensure_failed"


__all__ = [
    "AuditError",
    "ConfigurationError",
    "BackendError",
    "IndexEnsureError",
]
