"""
badge_capture.collaborators.mail

Transactional mail provider clients.

Responsibilities:
- Define the provider-neutral `MailMessage`/`MailResult` shapes.
- Implement the MailChannels and Resend send APIs over a shared httpx client.
- Select the provider strategy from settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from badge_capture.settings import Settings


@dataclass(frozen=True, slots=True)
class MailMessage:
    to: str
    sender: str
    subject: str
    body: str
    sender_name: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True, slots=True)
class MailResult:
    ok: bool
    status_code: int
    error_text: str = ""


class MailSender(Protocol):
    # Display name used in error messages ("MailChannels error 500: ...").
    name: str

    async def send(self, message: MailMessage) -> MailResult: ...


def _result(r: httpx.Response) -> MailResult:
    if r.is_success:
        return MailResult(ok=True, status_code=r.status_code)
    return MailResult(ok=False, status_code=r.status_code, error_text=r.text)


class MailChannelsSender:
    name = "MailChannels"

    def __init__(self, *, http: httpx.AsyncClient, url: str, api_key: str | None = None) -> None:
        self._http = http
        self._url = url
        self._api_key = api_key

    def _payload(self, message: MailMessage) -> dict[str, Any]:
        sender: dict[str, str] = {"email": message.sender}
        if message.sender_name:
            sender["name"] = message.sender_name
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": sender,
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body}],
        }
        if message.reply_to:
            payload["headers"] = {"Reply-To": message.reply_to}
        return payload

    async def send(self, message: MailMessage) -> MailResult:
        headers = {"X-Api-Key": self._api_key} if self._api_key else {}
        r = await self._http.post(self._url, headers=headers, json=self._payload(message))
        return _result(r)


class ResendSender:
    name = "Resend"

    def __init__(self, *, http: httpx.AsyncClient, url: str, api_key: str) -> None:
        self._http = http
        self._url = url
        self._api_key = api_key

    def _payload(self, message: MailMessage) -> dict[str, Any]:
        sender = message.sender
        if message.sender_name:
            sender = f"{message.sender_name} <{message.sender}>"
        payload: dict[str, Any] = {
            "from": sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.body,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        return payload

    async def send(self, message: MailMessage) -> MailResult:
        r = await self._http.post(
            self._url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json=self._payload(message),
        )
        return _result(r)


def build_mail_sender(settings: Settings, http: httpx.AsyncClient) -> MailSender | None:
    if settings.mail_provider == "resend":
        if not settings.resend_api_key:
            return None
        return ResendSender(http=http, url=settings.resend_url, api_key=settings.resend_api_key)
    return MailChannelsSender(
        http=http,
        url=settings.mailchannels_url,
        api_key=settings.mailchannels_api_key,
    )


# --- Module Notes -----------------------------------------------------------
# Transport errors (timeouts, connection resets) propagate out of `send`; only HTTP
# status outcomes are folded into MailResult.
