"""
badge_capture.collaborators.webhook

Spreadsheet-logging relay (Google Apps Script web app).

Responsibilities:
- POST each accepted submission, authenticated by a shared secret in the body.
- Report the HTTP outcome without raising on non-2xx.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from badge_capture.settings import Settings
from badge_capture.submission.models import SubmissionRecord


@dataclass(frozen=True, slots=True)
class WebhookResult:
    ok: bool
    status_code: int
    error_text: str = ""


class AppsScriptLogger:
    name = "AppsScript"

    def __init__(self, *, http: httpx.AsyncClient, url: str, secret: str) -> None:
        self._http = http
        self._url = url
        self._secret = secret

    async def log(self, record: SubmissionRecord) -> WebhookResult:
        # Apps Script answers a POST with a 302 to the script output; the shared
        # client follows redirects, so the final status is what gets reported.
        r = await self._http.post(self._url, json=record.to_webhook(secret=self._secret))
        if r.is_success:
            return WebhookResult(ok=True, status_code=r.status_code)
        return WebhookResult(ok=False, status_code=r.status_code, error_text=r.text)


def build_webhook_logger(settings: Settings, http: httpx.AsyncClient) -> AppsScriptLogger | None:
    # URL and secret are only meaningful together.
    if not settings.app_script_url or not settings.app_script_secret:
        return None
    return AppsScriptLogger(
        http=http,
        url=settings.app_script_url,
        secret=settings.app_script_secret,
    )
