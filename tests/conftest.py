"""
tests.conftest

Shared fixtures.

Responsibilities:
- Stand in for every outbound collaborator (mail, KV, sheet webhook) at the httpx
  transport layer, counting calls per host.
- Build settings and submission services wired to those fakes.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from badge_capture.collaborators.kv import build_kv_store
from badge_capture.services.submission_service import SubmissionService, build_submission_service
from badge_capture.settings import Settings

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=UTC)


class FakeCollaborators:
    """
    One MockTransport handler for all outbound hosts.
    - The KV host emulates the Workers KV values API on an in-memory dict.
    - Other hosts answer 200 unless a failure was registered for them.
    """

    MAIL = "mail.test"
    RESEND = "resend.test"
    SHEET = "sheet.test"
    KV = "kv.test"

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.requests: list[httpx.Request] = []
        self.kv: dict[str, str] = {}
        self.kv_ttls: dict[str, int] = {}
        self._failures: dict[str, httpx.Response | Exception] = {}

    def fail(self, host: str, outcome: httpx.Response | Exception) -> None:
        self._failures[host] = outcome

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.calls[host] += 1
        self.requests.append(request)

        failure = self._failures.get(host)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return failure

        if host == self.KV:
            return self._kv(request)
        return httpx.Response(200, json={"ok": True})

    def _kv(self, request: httpx.Request) -> httpx.Response:
        raw_path = request.url.raw_path.decode().split("?", 1)[0]
        key = unquote(raw_path.rsplit("/", 1)[1])
        if request.method == "GET":
            if key not in self.kv:
                return httpx.Response(404, json={"success": False})
            return httpx.Response(200, text=self.kv[key])
        if request.method == "PUT":
            self.kv[key] = request.content.decode()
            ttl = request.url.params.get("expiration_ttl")
            if ttl is not None:
                self.kv_ttls[key] = int(ttl)
            return httpx.Response(200, json={"success": True})
        return httpx.Response(405)


@pytest.fixture
def fake() -> FakeCollaborators:
    return FakeCollaborators()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Settings with every collaborator pointed at a FakeCollaborators host."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "env": "test",
            "capture_to": "captures@example.com",
            "sender_from": "no-reply@example.com",
            "mailchannels_url": f"https://{FakeCollaborators.MAIL}/tx/v1/send",
            "resend_url": f"https://{FakeCollaborators.RESEND}/emails",
            "app_script_url": f"https://{FakeCollaborators.SHEET}/macros/s/abc/exec",
            "app_script_secret": "sheet-secret",
            "kv_backend": "cloudflare",
            "cloudflare_api_base_url": f"https://{FakeCollaborators.KV}/client/v4",
            "cloudflare_account_id": "acct",
            "cloudflare_namespace_id": "ns",
            "cloudflare_api_token": "kv-token",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def service_for(fake: FakeCollaborators) -> Callable[..., Any]:
    """
    `async with service_for(settings) as svc:` yields a SubmissionService whose
    collaborators all talk to `fake`, with the capture clock pinned to FIXED_NOW.
    """

    @asynccontextmanager
    async def _factory(
        settings: Settings,
        *,
        clock: Callable[[], datetime] = lambda: FIXED_NOW,
    ) -> AsyncIterator[SubmissionService]:
        async with httpx.AsyncClient(transport=fake.transport(), follow_redirects=True) as http:
            yield build_submission_service(
                settings,
                http=http,
                kv_store=build_kv_store(settings, http),
                clock=clock,
            )

    return _factory
