"""
audit_sdk.tier0_core.redact
────────────────────────────
Path-based censoring of captured documents. A censor path is a dot-separated
selector: property names, numeric list indices, and ``*`` for "every element
of this list". Matching values are replaced in place by CENSORED.

Paths that do not resolve are skipped silently. Censoring is idempotent.

Usage:
    body = {"Questions": [{"answer": "a1"}, {"answer": "a2"}]}
    censor(body, ["Questions.*.answer"])
    # {"Questions": [{"answer": "**CENSORED**"}, {"answer": "**CENSORED**"}]}
"""
from __future__ import annotations

from collections.abc import Iterable, MutableMapping, Sequence
from typing import Any

CENSORED = "**CENSORED**"
WILDCARD = "*"


# ── Public API ─────────────────────────────────────────────────────────────

def censor(document: Any, paths: Iterable[str]) -> Any:
    """
    Censor every value reachable by *paths* inside *document*, in place.
    Returns *document* for convenience.
    """
    for path in paths:
        censor_path(document, path.split("."))
    return document


def censor_path(value: Any, segments: Sequence[str]) -> Any:
    """
    Apply one split censor path to *value*. Containers are updated in place
    and returned; a terminal value is returned as CENSORED.
    """
    if not segments:
        return CENSORED

    head, rest = segments[0], segments[1:]

    if isinstance(value, list):
        if head == WILDCARD:
            value[:] = [censor_path(item, rest) for item in value]
            return value
        index = _as_index(head)
        if index is not None and index < len(value):
            value[index] = censor_path(value[index], rest)
        return value

    if isinstance(value, MutableMapping):
        if head in value:
            value[head] = censor_path(value[head], rest)
        return value

    return value


def _as_index(segment: str) -> int | None:
    if segment.isdigit():
        return int(segment)
    return None


# ── structlog processor ───────────────────────────────────────────────────

SENSITIVE_LOG_KEYS: tuple[str, ...] = (
    "password", "passwd", "secret", "token", "api_key", "apikey",
    "authorization", "cookie", "access_token", "refresh_token",
    "client_secret", "ssn",
)


def structlog_censor_processor(
    logger: Any,
    method: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    structlog processor that censors sensitive top-level keys of the event.
    Add to the processor chain before any renderer.
    """
    return censor(event_dict, SENSITIVE_LOG_KEYS)


__all__ = [
    "CENSORED",
    "WILDCARD",
    "censor",
    "censor_path",
    "structlog_censor_processor",
    "SENSITIVE_LOG_KEYS",
]
