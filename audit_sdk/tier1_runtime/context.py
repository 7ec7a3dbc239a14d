"""
audit_sdk.tier1_runtime.context
────────────────────────────────
Per-transaction state, propagated through contextvars so application code
running inside a request can reach the transaction being audited:

    skip_log()          suppress the audit document for this request
    record_error(exc)   attach a handled error to the document

Both are no-ops outside an audited request.
"""
from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from audit_sdk.tier0_core.logging import bind_context


# ── Domain model ─────────────────────────────────────────────────────────────

@dataclass
class Transaction:
    """One audited request/response exchange."""
    document: dict[str, Any]
    index: str
    started: float
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    skip: bool = False
    error: BaseException | dict[str, Any] | None = None
    emitted: bool = False


# ── ContextVar storage ────────────────────────────────────────────────────────

_current: ContextVar[Transaction | None] = ContextVar(
    "audit_current_transaction",
    default=None,
)


# ── Public API ────────────────────────────────────────────────────────────────

def get_transaction() -> Transaction | None:
    """Return the transaction for the current async scope, if any."""
    return _current.get()


def set_transaction(transaction: Transaction | None) -> Any:
    """Activate *transaction* for the current scope. Returns a reset token."""
    token = _current.set(transaction)
    if transaction is not None:
        bind_context(request_id=transaction.request_id)
    return token


def reset_transaction(token: Any) -> None:
    _current.reset(token)


def skip_log() -> None:
    """Mark the current transaction so no audit document is emitted."""
    transaction = _current.get()
    if transaction is not None:
        transaction.skip = True


def record_error(error: BaseException | dict[str, Any]) -> None:
    """Attach a handled error to the current transaction's document."""
    transaction = _current.get()
    if transaction is not None:
        transaction.error = error


__all__ = [
    "Transaction",
    "get_transaction",
    "set_transaction",
    "reset_transaction",
    "skip_log",
    "record_error",
]
