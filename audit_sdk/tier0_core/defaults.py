"""
audit_sdk.tier0_core.defaults
──────────────────────────────
Built-in templates that caller options are merged over: index settings,
the audit document mapping, the capture whitelist, and the censor list.

These objects are module-level and shared. Never mutate them; merge()
always returns a fresh copy.
"""
from __future__ import annotations

from typing import Any


def _keyword(normalized: bool = True) -> dict[str, Any]:
    field: dict[str, Any] = {"type": "keyword"}
    if normalized:
        field["normalizer"] = "lowercase"
    return field


def _text_with_keyword() -> dict[str, Any]:
    return {"type": "text", "fields": {"keyword": _keyword()}}


def _disabled_object() -> dict[str, Any]:
    return {"type": "object", "enabled": False}


# ── Index settings ────────────────────────────────────────────────────────────

INDEX_SETTINGS: dict[str, Any] = {
    "index": {
        "number_of_shards": "3",
        "number_of_replicas": "2",
        "refresh_interval": "60s",
        "analysis": {
            "normalizer": {
                "lowercase": {
                    "type": "custom",
                    "char_filter": [],
                    "filter": ["lowercase"],
                },
            },
        },
    },
}


# ── Document mapping ──────────────────────────────────────────────────────────

_HEADER_KEYWORDS = (
    "accept", "accept-encoding", "cdn-loop", "cf-connecting-ip",
    "cf-ipcountry", "cf-ray", "cf-visitor", "content-type", "host",
    "x-forwarded-for", "x-forwarded-host", "x-forwarded-port",
    "x-forwarded-proto", "x-original-forwarded-for", "x-original-uri",
    "x-real-ip", "x-request-id", "x-scheme",
)

_HEADERS: dict[str, Any] = {name: _keyword() for name in _HEADER_KEYWORDS}
_HEADERS["authorization"] = {"type": "text", "analyzer": "standard"}
_HEADERS["user-agent"] = {"type": "text", "analyzer": "standard"}
_HEADERS["content-length"] = {"type": "integer"}

DEFAULT_MAPPING: dict[str, Any] = {
    "properties": {
        "env": {"type": "keyword", "index": True},
        "duration": {"type": "integer"},
        "@timestamp": {"type": "date"},
        "request": {
            "properties": {
                "userId": _text_with_keyword(),
                "email": _text_with_keyword(),
                "headers": {"properties": _HEADERS},
                "httpVersion": _keyword(normalized=False),
                "method": _keyword(normalized=False),
                "originalUrl": _keyword(normalized=False),
                "route": {"properties": {"path": _keyword(normalized=False)}},
                "path": _keyword(normalized=False),
                "query": _disabled_object(),
                "body": _disabled_object(),
            },
        },
        "response": {
            "properties": {
                "sent": _disabled_object(),
                "statusCode": {"type": "integer"},
                "took": {"type": "integer"},
            },
        },
        "os": {
            "properties": {
                "totalmem": {"type": "long"},
                "freemem": {"type": "long"},
                "loadavg": {"type": "float"},
            },
        },
        "process": {
            "properties": {
                "pid": {"type": "integer"},
                "memory": {
                    "properties": {
                        "rss": {"type": "long"},
                        "vms": {"type": "long"},
                    },
                },
            },
        },
        "error": {
            "properties": {
                "errors": _disabled_object(),
                "args": _disabled_object(),
                "code": _text_with_keyword(),
                "error": {"type": "text"},
                "error_description": {"type": "text"},
                "message": {"type": "text", "analyzer": "standard"},
                "name": _keyword(),
                "stack": _keyword(normalized=False),
                "type": _keyword(normalized=False),
            },
        },
    },
}


# ── Capture whitelist and censor list ────────────────────────────────────────

DEFAULT_WHITELIST: dict[str, list[str]] = {
    "request": [
        "userId",
        "body",
        "email",
        "httpVersion",
        "headers",
        "method",
        "originalUrl",
        "path",
        "query",
    ],
    "response": ["statusCode", "sent", "took"],
    "error": [
        "message",
        "stack",
        "type",
        "name",
        "code",
        "errors",
        "error",
        "error_description",
    ],
}

DEFAULT_CENSOR: list[str] = ["password"]


def default_options() -> dict[str, Any]:
    """The option tree that caller options are merged over."""
    return {
        "whitelist": DEFAULT_WHITELIST,
        "censor": DEFAULT_CENSOR,
        "mapping": DEFAULT_MAPPING,
        "index_settings": INDEX_SETTINGS,
    }


__all__ = [
    "INDEX_SETTINGS",
    "DEFAULT_MAPPING",
    "DEFAULT_WHITELIST",
    "DEFAULT_CENSOR",
    "default_options",
]
