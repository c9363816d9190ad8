"""
badge_capture.collaborators.kv

Key-value store boundary used for rate-limit counters and stored submissions.

Responsibilities:
- Define the minimal `get`/`put` contract the services depend on.
- Provide an in-process store for local development and tests.
- Provide a Cloudflare Workers KV client over its REST API.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol
from urllib.parse import quote

import httpx

from badge_capture.observability.logging import get_logger
from badge_capture.settings import Settings

log = get_logger(__name__)

# Workers KV rejects expiration_ttl values below 60 seconds.
CLOUDFLARE_MIN_TTL_SECONDS = 60


class KeyValueStoreError(Exception):
    """Non-2xx answer from a remote key-value store."""

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(f"key-value store returned {status_code}: {text[:200]}")
        self.status_code = status_code
        self.text = text


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None: ...


class InMemoryKeyValueStore:
    """
    Process-local store with TTL support.
    Not shared between workers, so counters are per-process when this backend is used.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, expires_at)

    def keys(self) -> list[str]:
        return list(self._data)


class CloudflareKVStore:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        base_url: str,
        account_id: str,
        namespace_id: str,
        api_token: str,
    ) -> None:
        self._http = http
        self._values_url = (
            f"{base_url.rstrip('/')}/accounts/{account_id}"
            f"/storage/kv/namespaces/{namespace_id}/values"
        )
        self._api_token = api_token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}"}

    def _url(self, key: str) -> str:
        # Keys contain ":" and caller-supplied session ids; encode everything.
        return f"{self._values_url}/{quote(key, safe='')}"

    async def get(self, key: str) -> str | None:
        r = await self._http.get(self._url(key), headers=self._headers())
        if r.status_code == 404:
            return None
        if not r.is_success:
            raise KeyValueStoreError(r.status_code, r.text)
        return r.text

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        params: dict[str, int] = {}
        if ttl_seconds:
            params["expiration_ttl"] = max(int(ttl_seconds), CLOUDFLARE_MIN_TTL_SECONDS)
        r = await self._http.put(
            self._url(key),
            headers={**self._headers(), "Content-Type": "text/plain"},
            params=params,
            content=value.encode("utf-8"),
        )
        if not r.is_success:
            raise KeyValueStoreError(r.status_code, r.text)


def build_kv_store(settings: Settings, http: httpx.AsyncClient) -> KeyValueStore | None:
    if settings.kv_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.kv_backend == "cloudflare":
        if not (
            settings.cloudflare_account_id
            and settings.cloudflare_namespace_id
            and settings.cloudflare_api_token
        ):
            log.warning("kv_store_missing_config", backend="cloudflare")
            return None
        return CloudflareKVStore(
            http=http,
            base_url=settings.cloudflare_api_base_url,
            account_id=settings.cloudflare_account_id,
            namespace_id=settings.cloudflare_namespace_id,
            api_token=settings.cloudflare_api_token,
        )
    return None


# --- Module Notes -----------------------------------------------------------
# Consistency of counters and records is whatever the backing store offers; callers
# do not lock around get/put.
