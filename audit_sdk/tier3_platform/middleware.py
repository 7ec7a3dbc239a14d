"""
audit_sdk.tier3_platform.middleware
────────────────────────────────────
ASGI middleware that audits every HTTP request through a RequestAuditor.

The request is captured when the scope arrives, the body as it is read, and
the document is completed when the final response body chunk has been sent
(or when the app raises). Exceptions from the app are recorded on the
document and re-raised unchanged.

Usage (FastAPI / Starlette)::

    from audit_sdk import AuditASGIMiddleware, skip_log

    app.add_middleware(AuditASGIMiddleware, index_prefix="api")

    @app.get("/health")
    async def health():
        skip_log()
        return {"ok": True}
"""
from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs

from audit_sdk.tier1_runtime.context import reset_transaction, set_transaction
from audit_sdk.tier3_platform.auditor import RequestAuditor

# Response bodies beyond this size are not kept on the document.
MAX_CAPTURED_BODY = 1024 * 1024


def _headers(scope: dict) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw_name, raw_value in scope.get("headers", []):
        name = raw_name.decode("latin-1").lower()
        value = raw_value.decode("latin-1")
        headers[name] = f"{headers[name]}, {value}" if name in headers else value
    return headers


def _query(query_string: str) -> dict[str, Any]:
    parsed = parse_qs(query_string, keep_blank_values=True)
    return {k: v[0] if len(v) == 1 else v for k, v in parsed.items()}


def _decode(raw: bytes, content_type: str) -> Any:
    if not raw:
        return None
    if "json" in content_type:
        try:
            return json.loads(raw)
        except ValueError:
            pass
    if "application/x-www-form-urlencoded" in content_type:
        return _query(raw.decode("latin-1"))
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def request_fields(scope: dict) -> dict[str, Any]:
    """The capturable request fields of an HTTP scope."""
    query_string = scope.get("query_string", b"").decode("latin-1")
    path = scope.get("path", "")
    return {
        "method": scope.get("method"),
        "path": path,
        "originalUrl": f"{path}?{query_string}" if query_string else path,
        "httpVersion": scope.get("http_version"),
        "headers": _headers(scope),
        "query": _query(query_string),
    }


def _route_path(scope: dict) -> str | None:
    return getattr(scope.get("route"), "path", None)


class AuditASGIMiddleware:
    """
    ASGI middleware emitting one audit document per HTTP request.
    Pass an existing *auditor*, or options to build one.
    """

    def __init__(
        self,
        app: Any,
        auditor: RequestAuditor | None = None,
        **options: Any,
    ) -> None:
        self.app = app
        self.auditor = auditor or RequestAuditor(options or None)

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        auditor = self.auditor
        fields = request_fields(scope)
        content_type = fields["headers"].get("content-type", "")
        transaction = auditor.on_transaction_start(fields)
        token = set_transaction(transaction)

        received = bytearray()
        sent = bytearray()
        response: dict[str, Any] = {"statusCode": None}
        response_type = ""

        def finish(error: BaseException | None = None) -> None:
            if error is not None and response["statusCode"] is None:
                response["statusCode"] = 500
            if len(sent) <= MAX_CAPTURED_BODY:
                response["sent"] = _decode(bytes(sent), response_type)
            auditor.on_transaction_end(
                transaction, response, error=error, route=_route_path(scope)
            )

        async def receive_wrapper() -> dict:
            message = await receive()
            if message["type"] == "http.request":
                received.extend(message.get("body", b""))
                if not message.get("more_body", False) and received:
                    auditor.attach_body(transaction, _decode(bytes(received), content_type))
            return message

        async def send_wrapper(message: dict) -> None:
            nonlocal response_type
            if message["type"] == "http.response.start":
                response["statusCode"] = message["status"]
                for name, value in message.get("headers", []):
                    if name.lower() == b"content-type":
                        response_type = value.decode("latin-1")
            elif message["type"] == "http.response.body":
                if len(sent) <= MAX_CAPTURED_BODY:
                    sent.extend(message.get("body", b""))
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                finish()

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as exc:
            finish(exc)
            raise
        else:
            if not transaction.emitted:
                finish()
        finally:
            reset_transaction(token)


__all__ = ["AuditASGIMiddleware", "request_fields"]
