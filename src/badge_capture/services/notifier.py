"""
badge_capture.services.notifier

Renders the capture mail for a submission and hands it to the configured provider.

Responsibilities:
- Hold the recipient/sender configuration (missing config means no notifier).
- Render subject and body deterministically from the record.
- Delegate delivery to a `MailSender` strategy (MailChannels or Resend).
- Optionally compose a short confirmation addressed to the submitter.
"""

from __future__ import annotations

import httpx

from badge_capture.collaborators.mail import MailMessage, MailResult, MailSender, build_mail_sender
from badge_capture.settings import Settings
from badge_capture.submission.models import SubmissionRecord
from badge_capture.submission.rendering import (
    render_body,
    render_confirmation_body,
    render_confirmation_subject,
    render_subject,
)


class Notifier:
    def __init__(
        self,
        sender: MailSender,
        *,
        to: str,
        sender_address: str,
        site_name: str,
        reply_to: str | None = None,
        confirm_submitter: bool = False,
    ) -> None:
        self._sender = sender
        self._to = to
        self._sender_address = sender_address
        self._site_name = site_name
        self._reply_to = reply_to
        self._confirm_submitter = confirm_submitter

    @property
    def provider(self) -> str:
        return self._sender.name

    @property
    def confirms_submitter(self) -> bool:
        return self._confirm_submitter

    def compose(self, record: SubmissionRecord) -> MailMessage:
        return MailMessage(
            to=self._to,
            sender=self._sender_address,
            sender_name=self._site_name,
            subject=render_subject(self._site_name),
            body=render_body(record),
            reply_to=self._reply_to,
        )

    def compose_confirmation(self, record: SubmissionRecord) -> MailMessage:
        return MailMessage(
            to=record.email,
            sender=self._sender_address,
            sender_name=self._site_name,
            subject=render_confirmation_subject(self._site_name),
            body=render_confirmation_body(record),
            reply_to=self._reply_to,
        )

    async def notify(self, record: SubmissionRecord) -> MailResult:
        return await self._sender.send(self.compose(record))

    async def confirm(self, record: SubmissionRecord) -> MailResult:
        return await self._sender.send(self.compose_confirmation(record))


def build_notifier(settings: Settings, http: httpx.AsyncClient) -> Notifier | None:
    if not settings.capture_to or not settings.sender_from:
        return None
    sender = build_mail_sender(settings, http)
    if sender is None:
        return None
    return Notifier(
        sender,
        to=settings.capture_to,
        sender_address=settings.sender_from,
        site_name=settings.site_name,
        # Replies go to the capture inbox unless a dedicated address is configured.
        reply_to=settings.reply_to or settings.capture_to,
        confirm_submitter=settings.confirm_submitter,
    )
