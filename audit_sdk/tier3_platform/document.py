"""
audit_sdk.tier3_platform.document
──────────────────────────────────
Builds the audit document for one transaction.

start()   at request time: timestamp, env, whitelisted request fields.
finish()  after the outcome is known: response fields, duration, route,
          whitelisted error fields, host metadata.

Every captured value is deep-copied so later mutation of the live request or
response cannot change the snapshot. A value that cannot be copied (a lock,
a socket) is stored as its repr(). The request body is censored as soon as
it is captured.

Document shape::

    {
        "env": "production",
        "@timestamp": "2020-09-30T23:59:59.999Z",
        "duration": 12,
        "request": {"method": "GET", "path": "/test", "route": {"path": ...}, ...},
        "response": {"statusCode": 200, ...},
        "error": {"name": "ValueError", "message": "...", ...},
        "os": {"totalmem": ..., "freemem": ..., "loadavg": [...]},
        "process": {"pid": ..., "memory": {"rss": ..., "vms": ...}},
    }
"""
from __future__ import annotations

import copy
import traceback
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import psutil

from audit_sdk.tier0_core.config import Whitelist
from audit_sdk.tier0_core.redact import censor
from audit_sdk.tier1_runtime.clock import Clock, get_clock, isoformat

_MISSING = object()


def _read(source: Any, key: str) -> Any:
    if source is None:
        return _MISSING
    if isinstance(source, Mapping):
        return source.get(key, _MISSING)
    return getattr(source, key, _MISSING)


def _snapshot(value: Any) -> Any:
    if isinstance(value, Mapping):
        value = dict(value)
    elif isinstance(value, tuple):
        value = list(value)
    try:
        return copy.deepcopy(value)
    except Exception:
        # copy what can be copied, element by element
        if isinstance(value, dict):
            return {k: _snapshot(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_snapshot(v) for v in value]
        return repr(value)


def _pick(source: Any, keys: Iterable[str]) -> dict[str, Any]:
    picked: dict[str, Any] = {}
    for key in keys:
        value = _read(source, key)
        if value is not _MISSING:
            picked[key] = _snapshot(value)
    return picked


def error_fields(error: BaseException | Mapping[str, Any]) -> dict[str, Any]:
    """
    Flatten an error into candidate document fields. Instance attributes
    override the derived ones, so ``exc.name = "x"`` wins over the class name.
    """
    if isinstance(error, Mapping):
        return dict(error)
    cls = type(error)
    fields: dict[str, Any] = {
        "name": cls.__name__,
        "type": f"{cls.__module__}.{cls.__qualname__}",
        "message": str(error),
        "args": list(error.args),
        "stack": "".join(
            traceback.format_exception(cls, error, error.__traceback__)
        ),
    }
    fields.update(
        (k, v) for k, v in vars(error).items() if not k.startswith("_")
    )
    return fields


def host_metadata() -> dict[str, Any]:
    """OS and process figures attached to every finished document."""
    memory = psutil.virtual_memory()
    process = psutil.Process()
    process_memory = process.memory_info()
    return {
        "os": {
            "totalmem": memory.total,
            "freemem": memory.available,
            "loadavg": list(psutil.getloadavg()),
        },
        "process": {
            "pid": process.pid,
            "memory": {"rss": process_memory.rss, "vms": process_memory.vms},
        },
    }


class DocumentBuilder:
    def __init__(
        self,
        whitelist: Whitelist,
        censor_paths: list[str],
        *,
        env: str = "development",
        clock: Clock | None = None,
    ) -> None:
        self.whitelist = whitelist
        self.censor_paths = list(censor_paths)
        self.env = env
        self._clock = clock

    @property
    def clock(self) -> Clock:
        return self._clock or get_clock()

    def start(self, request: Any, now: datetime | None = None) -> dict[str, Any]:
        """Open a document with the whitelisted request fields."""
        document: dict[str, Any] = {
            "env": self.env,
            "request": _pick(request, self.whitelist.request),
            "@timestamp": isoformat(now or self.clock.now()),
        }
        self._censor_body(document["request"])
        return document

    def attach_body(self, document: dict[str, Any], body: Any) -> None:
        """Store a request body that arrived after start(), censored."""
        if "body" not in self.whitelist.request:
            return
        document["request"]["body"] = _snapshot(body)
        self._censor_body(document["request"])

    def finish(
        self,
        document: dict[str, Any],
        response: Any,
        *,
        error: BaseException | Mapping[str, Any] | None = None,
        route: str | None = None,
        duration_ms: float | None = None,
    ) -> dict[str, Any]:
        """Complete the document once the transaction outcome is known."""
        document["response"] = _pick(response, self.whitelist.response)
        if duration_ms is not None:
            document["duration"] = int(round(duration_ms))
        if route:
            document["request"]["route"] = {"path": route}
        if error is not None:
            document["error"] = _pick(error_fields(error), self.whitelist.error)
        document.update(host_metadata())
        return document

    def _censor_body(self, request: dict[str, Any]) -> None:
        body = request.get("body")
        if isinstance(body, (dict, list)):
            censor(body, self.censor_paths)


__all__ = ["DocumentBuilder", "error_fields", "host_metadata"]
