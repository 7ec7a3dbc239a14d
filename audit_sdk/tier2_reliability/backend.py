"""
audit_sdk.tier2_reliability.backend
────────────────────────────────────
Indexing backend abstraction. The audit pipeline needs four operations:
check that an index exists, create it with settings and mapping, update the
mapping of an existing index, and write one document.

Backends: Elasticsearch over HTTP (prod) | in-memory (dev/test)
Configure via: AUDIT_BACKEND=elasticsearch|memory
               AUDIT_ELASTICSEARCH_URL (default: http://localhost:9200)
               AUDIT_ELASTICSEARCH_USERNAME / AUDIT_ELASTICSEARCH_PASSWORD
               AUDIT_REQUEST_TIMEOUT (seconds, default: 10)
"""
from __future__ import annotations

import copy
import json
from collections import Counter
from typing import Any, Protocol, runtime_checkable

import httpx

from audit_sdk.tier0_core.config import get_settings
from audit_sdk.tier0_core.errors import BackendError
from audit_sdk.tier0_core.merge import merge


@runtime_checkable
class IndexBackend(Protocol):
    async def index_exists(self, index: str) -> bool: ...

    async def create_index(
        self, index: str, settings: dict[str, Any], mapping: dict[str, Any]
    ) -> None: ...

    async def update_mapping(self, index: str, mapping: dict[str, Any]) -> None: ...

    async def write_document(self, index: str, document: dict[str, Any]) -> None: ...


# ── In-memory backend (dev / tests) ──────────────────────────────────────────

class MemoryIndexBackend:
    """
    Keeps indices and documents in dicts and counts calls per operation.
    Operations named in *fail_on* raise BackendError.
    """

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.indices: dict[str, dict[str, Any]] = {}
        self.documents: dict[str, list[dict[str, Any]]] = {}
        self.calls: Counter[str] = Counter()
        self.fail_on = set(fail_on or ())

    def _record(self, operation: str, index: str) -> None:
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise BackendError(f"{operation} rejected", index=index)

    async def index_exists(self, index: str) -> bool:
        self._record("index_exists", index)
        return index in self.indices

    async def create_index(
        self, index: str, settings: dict[str, Any], mapping: dict[str, Any]
    ) -> None:
        self._record("create_index", index)
        if index in self.indices:
            raise BackendError(
                f"index {index} already exists",
                code="resource_already_exists",
                status_code=400,
                index=index,
            )
        self.indices[index] = {
            "settings": copy.deepcopy(settings),
            "mappings": copy.deepcopy(mapping),
        }

    async def update_mapping(self, index: str, mapping: dict[str, Any]) -> None:
        self._record("update_mapping", index)
        if index not in self.indices:
            raise BackendError(f"no such index {index}", status_code=404, index=index)
        current = self.indices[index]["mappings"]
        self.indices[index]["mappings"] = merge(mapping, current, True)

    async def write_document(self, index: str, document: dict[str, Any]) -> None:
        self._record("write_document", index)
        self.documents.setdefault(index, []).append(copy.deepcopy(document))

    def all_documents(self) -> list[dict[str, Any]]:
        return [doc for docs in self.documents.values() for doc in docs]


# ── Elasticsearch backend ────────────────────────────────────────────────────

class ElasticsearchBackend:
    """
    Elasticsearch (or OpenSearch) REST backend on httpx.AsyncClient.

    Usage::

        backend = ElasticsearchBackend("http://localhost:9200")
        await backend.write_document("log_2020-h2", {"request": {...}})
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        username: str | None = None,
        password: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._url = (url or settings.elasticsearch_url).rstrip("/")
        username = username or settings.elasticsearch_username
        password = password or settings.elasticsearch_password
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = httpx.AsyncClient(
            base_url=self._url,
            timeout=timeout or settings.request_timeout,
            auth=auth,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def url(self) -> str:
        return self._url

    async def _request(
        self, method: str, path: str, body: Any = None
    ) -> httpx.Response:
        content = None
        if body is not None:
            content = json.dumps(body, default=str)
        try:
            return await self._client.request(method, path, content=content)
        except httpx.HTTPError as exc:
            raise BackendError(
                f"{method} {self._url}{path} failed: {exc}",
                code="backend_unreachable",
                path=path,
            ) from exc

    def _check(self, response: httpx.Response, operation: str, index: str) -> None:
        if response.is_success:
            return
        raise BackendError(
            f"{operation} on {index} returned HTTP {response.status_code}",
            status_code=response.status_code,
            index=index,
            operation=operation,
            body=response.text[:500],
        )

    async def index_exists(self, index: str) -> bool:
        response = await self._request("HEAD", f"/{index}")
        if response.status_code == 404:
            return False
        self._check(response, "index_exists", index)
        return True

    async def create_index(
        self, index: str, settings: dict[str, Any], mapping: dict[str, Any]
    ) -> None:
        response = await self._request(
            "PUT", f"/{index}", {"settings": settings, "mappings": mapping}
        )
        self._check(response, "create_index", index)

    async def update_mapping(self, index: str, mapping: dict[str, Any]) -> None:
        response = await self._request("PUT", f"/{index}/_mapping", mapping)
        self._check(response, "update_mapping", index)

    async def write_document(self, index: str, document: dict[str, Any]) -> None:
        response = await self._request("POST", f"/{index}/_doc", document)
        self._check(response, "write_document", index)

    async def aclose(self) -> None:
        await self._client.aclose()


# ── Provider registry ─────────────────────────────────────────────────────────

_backend: IndexBackend | None = None


def _build_backend() -> IndexBackend:
    name = get_settings().backend
    if name == "memory":
        return MemoryIndexBackend()
    return ElasticsearchBackend()


def get_backend() -> IndexBackend:
    global _backend
    if _backend is None:
        _backend = _build_backend()
    return _backend


def _reset_backend() -> None:
    global _backend
    _backend = None


__all__ = [
    "IndexBackend",
    "MemoryIndexBackend",
    "ElasticsearchBackend",
    "get_backend",
]
