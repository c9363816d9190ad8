"""
tests.test_submission_service

End-to-end behaviour of one submission through validation and the step graph,
with every collaborator faked at the HTTP transport layer.

Responsibilities:
- Invalid input never reaches a collaborator.
- Steps are independent: one failing collaborator does not change the others' outcomes.
- Verdict policy, rate limiting and storage-key idempotency.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from badge_capture.collaborators.mail import MailMessage, MailResult
from badge_capture.services.notifier import Notifier
from badge_capture.services.submission_service import SubmissionService
from badge_capture.submission.models import RequestMetadata

META = RequestMetadata(ip="198.51.100.7", user_agent="pytest-agent")


def _body(**fields: object) -> bytes:
    payload: dict[str, object] = {"email": "a@b.com", "badge": "GOLD", "consent": True}
    payload.update(fields)
    return json.dumps(payload).encode()


@pytest.mark.asyncio
async def test_all_collaborators_healthy(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(), META)

    assert result.status_code == 200
    assert result.to_response() == {
        "ok": True,
        "steps": {"rateLimit": "stored", "persist": "stored", "notify": "sent", "log": "logged"},
        "errors": [],
    }
    assert fake.calls[fake.MAIL] == 1
    assert fake.calls[fake.SHEET] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        b'{"badge": "GOLD", "consent": true}',
        b'{"email": "a@b.com", "consent": true}',
        b'{"email": "not-an-email", "badge": "GOLD", "consent": true}',
        b'{"email": "a@b.com", "badge": "   ", "consent": true}',
        b"not json at all",
        b"[1, 2, 3]",
        b'{"email": "a@b.com", "badge": "GOLD", "n": ' + b"1" * 5000 + b"}",
    ],
)
async def test_invalid_input_invokes_no_collaborator(fake, make_settings, service_for, raw) -> None:
    async with service_for(make_settings()) as svc:
        result = await svc.handle(raw, META)

    assert result.status_code == 400
    assert result.ok is False
    assert result.errors
    assert result.steps == {}
    assert fake.total_calls == 0


@pytest.mark.asyncio
async def test_malformed_email_scenario(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(email="not-an-email"), META)

    assert result.status_code == 400
    assert any("email" in e for e in result.errors)
    assert fake.total_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("consent", [False, None, "true", 1])
async def test_consent_enforced(fake, make_settings, service_for, consent) -> None:
    async with service_for(make_settings(require_consent=True)) as svc:
        result = await svc.handle(_body(consent=consent), META)

    assert result.status_code == 400
    assert result.errors == ["Consent required"]
    assert fake.total_calls == 0


@pytest.mark.asyncio
async def test_mail_failure_does_not_affect_other_steps(fake, make_settings, service_for) -> None:
    fake.fail(fake.MAIL, httpx.Response(500, text="x" * 500))
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(sessionId="s-1"), META)

    assert result.steps == {
        "rateLimit": "stored",
        "persist": "stored",
        "notify": "failed_500",
        "log": "logged",
    }
    assert result.errors == [f"MailChannels error 500: {'x' * 200}"]
    # The sheet still has it, so the submission counts as accepted.
    assert result.ok is True
    assert result.status_code == 200
    assert "badge:s-1" in fake.kv
    assert fake.calls[fake.SHEET] == 1


@pytest.mark.asyncio
async def test_mail_timeout_is_a_transport_failure(fake, make_settings, service_for) -> None:
    fake.fail(fake.MAIL, httpx.ReadTimeout("timed out"))
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(), META)

    assert result.steps["notify"] == "failed_exception"
    assert result.errors == ["MailChannels exception: timed out"]
    assert result.steps["log"] == "logged"


@pytest.mark.asyncio
async def test_no_primary_step_succeeds_is_bad_gateway(fake, make_settings, service_for) -> None:
    fake.fail(fake.MAIL, httpx.Response(503, text="mail down"))
    fake.fail(fake.SHEET, httpx.ConnectError("connection refused"))
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(), META)

    assert result.status_code == 502
    assert result.ok is False
    assert result.steps["notify"] == "failed_503"
    assert result.steps["log"] == "failed_exception"
    assert result.errors == [
        "MailChannels error 503: mail down",
        "AppsScript exception: connection refused",
    ]


@pytest.mark.asyncio
async def test_without_kv_store_notify_still_runs(fake, make_settings, service_for) -> None:
    async with service_for(make_settings(kv_backend="none")) as svc:
        result = await svc.handle(_body(), META)

    assert result.steps["rateLimit"] == "skipped_missing_config"
    assert result.steps["persist"] == "skipped_missing_config"
    assert result.steps["notify"] == "sent"
    assert result.ok is True
    assert fake.calls[fake.KV] == 0


@pytest.mark.asyncio
async def test_kv_outage_does_not_block_submission(fake, make_settings, service_for) -> None:
    fake.fail(fake.KV, httpx.Response(503, text="kv down"))
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(), META)

    assert result.steps == {
        "rateLimit": "failed_503",
        "persist": "failed_503",
        "notify": "sent",
        "log": "logged",
    }
    assert result.errors == ["RateLimit error 503: kv down", "KV error 503: kv down"]
    assert result.status_code == 200


@pytest.mark.asyncio
async def test_unconfigured_mail_and_sheet(fake, make_settings, service_for) -> None:
    settings = make_settings(capture_to=None, app_script_url=None)
    async with service_for(settings) as svc:
        result = await svc.handle(_body(), META)

    assert result.steps["notify"] == "skipped_missing_config"
    assert result.steps["log"] == "skipped_missing_config"
    assert result.errors == []
    assert result.ok is False
    assert result.status_code == 502
    assert fake.calls[fake.MAIL] == 0
    assert fake.calls[fake.SHEET] == 0


@pytest.mark.asyncio
async def test_same_session_id_overwrites_one_key(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        await svc.handle(_body(sessionId="sess-42", city="Oslo"), META)
        await svc.handle(_body(sessionId="sess-42", city="Bergen"), META)

    records = [k for k in fake.kv if k.startswith("badge:")]
    assert records == ["badge:sess-42"]
    stored = json.loads(fake.kv["badge:sess-42"])
    assert stored["city"] == "Bergen"
    assert stored["ip"] == "198.51.100.7"
    assert stored["userAgent"] == "pytest-agent"
    assert fake.kv_ttls["badge:sess-42"] == 365 * 24 * 3600


@pytest.mark.asyncio
async def test_missing_session_id_gets_generated_key(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        await svc.handle(_body(), META)
        await svc.handle(_body(), META)

    records = [k for k in fake.kv if k.startswith("badge:")]
    assert len(records) == 2


@pytest.mark.asyncio
async def test_third_submission_in_hour_is_throttled(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        results = [await svc.handle(_body(sessionId=f"s-{i}"), META) for i in range(3)]

    assert [r.steps["rateLimit"] for r in results] == ["stored", "stored", "blocked"]
    throttled = results[2]
    assert throttled.status_code == 200
    assert throttled.ok is True
    assert throttled.to_response() == {
        "ok": True,
        "steps": {
            "rateLimit": "blocked",
            "persist": "skipped",
            "notify": "skipped",
            "log": "skipped",
        },
        "errors": [],
        "throttled": True,
    }
    # Only the two accepted submissions reached the mail and sheet collaborators.
    assert fake.calls[fake.MAIL] == 2
    assert fake.calls[fake.SHEET] == 2
    assert "badge:s-2" not in fake.kv


@pytest.mark.asyncio
async def test_other_clients_and_next_hour_not_throttled(fake, make_settings, service_for) -> None:
    now = [datetime(2026, 5, 1, 10, 30, tzinfo=UTC)]
    async with service_for(make_settings(), clock=lambda: now[0]) as svc:
        for _ in range(3):
            await svc.handle(_body(), META)

        other_client = await svc.handle(_body(), RequestMetadata(ip="198.51.100.8"))
        now[0] += timedelta(hours=1)
        next_hour = await svc.handle(_body(), META)

    assert other_client.steps["rateLimit"] == "stored"
    assert next_hour.steps["rateLimit"] == "stored"
    assert next_hour.steps["notify"] == "sent"




@pytest.mark.asyncio
async def test_unexpected_sheet_exception_is_recorded_in_its_step(
    fake, make_settings, service_for
) -> None:
    # InvalidURL is not an httpx.HTTPError; it still belongs to the log step.
    fake.fail(fake.SHEET, httpx.InvalidURL("bad url"))
    async with service_for(make_settings()) as svc:
        result = await svc.handle(_body(), META)

    assert result.steps == {
        "rateLimit": "stored",
        "persist": "stored",
        "notify": "sent",
        "log": "failed_exception",
    }
    assert result.errors == ["AppsScript exception: bad url"]
    assert result.ok is True
    assert result.status_code == 200
    assert fake.calls[fake.MAIL] == 1


class _RaisingSender:
    name = "Broken"

    async def send(self, message: MailMessage) -> MailResult:
        raise RuntimeError("template bug")


def _notifier(sender, **kwargs: object) -> Notifier:
    return Notifier(
        sender,
        to="captures@example.com",
        sender_address="no-reply@example.com",
        site_name="ReadyToRelate",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_provider_raising_is_a_failed_notify_step(make_settings) -> None:
    svc = SubmissionService(settings=make_settings(), notifier=_notifier(_RaisingSender()))

    result = await svc.handle(_body(), META)

    assert result.steps["notify"] == "failed_exception"
    assert result.errors == ["Broken exception: template bug"]
    assert result.status_code == 502


def _broken_clock() -> datetime:
    raise RuntimeError("clock unavailable")


@pytest.mark.asyncio
async def test_internal_bug_is_500_without_details(fake, make_settings, service_for) -> None:
    async with service_for(make_settings(), clock=_broken_clock) as svc:
        result = await svc.handle(_body(), META)

    assert result.status_code == 500
    assert result.ok is False
    assert result.errors == ["Internal error"]
    assert result.steps == {}
    assert fake.total_calls == 0


@pytest.mark.asyncio
async def test_confirmation_mail_goes_to_submitter(fake, make_settings, service_for) -> None:
    async with service_for(make_settings(confirm_submitter=True)) as svc:
        result = await svc.handle(_body(badge="SILVER"), META)

    assert result.steps["notify"] == "sent"
    capture, confirmation = fake.requests_to(fake.MAIL)
    assert json.loads(capture.content)["personalizations"] == [
        {"to": [{"email": "captures@example.com"}]}
    ]
    payload = json.loads(confirmation.content)
    assert payload["personalizations"] == [{"to": [{"email": "a@b.com"}]}]
    assert payload["subject"] == "ReadyToRelate: badge saved"
    assert payload["content"][0]["value"] == "Thanks! We saved your badge code SILVER."


@pytest.mark.asyncio
async def test_no_confirmation_by_default(fake, make_settings, service_for) -> None:
    async with service_for(make_settings()) as svc:
        await svc.handle(_body(), META)

    assert fake.calls[fake.MAIL] == 1


class _ConfirmationFailsSender:
    name = "Flaky"

    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> MailResult:
        self.sent.append(message)
        if message.to == "captures@example.com":
            return MailResult(ok=True, status_code=202)
        raise RuntimeError("recipient rejected")


@pytest.mark.asyncio
async def test_failed_confirmation_does_not_change_notify(make_settings) -> None:
    sender = _ConfirmationFailsSender()
    notifier = _notifier(sender, confirm_submitter=True)
    svc = SubmissionService(settings=make_settings(), notifier=notifier)

    result = await svc.handle(_body(), META)

    assert result.steps["notify"] == "sent"
    assert result.errors == []
    assert result.status_code == 200
    assert [m.to for m in sender.sent] == ["captures@example.com", "a@b.com"]


# --- Module Notes -----------------------------------------------------------
# KV traffic goes through the Workers KV emulation in conftest, so rate-limit and
# storage assertions look at `fake.kv` directly.
