from __future__ import annotations

import logging
import smtplib
from dataclasses import replace

import pytest

from portal.core.config import Settings, SmtpSettings
from portal.services import email_service
from portal.services.email_service import (
    INVITATION_SUBJECT,
    build_invitation_email,
    deliver_invitation_email,
    invitation_link,
)

SMTP = SmtpSettings(
    host="smtp.example.com",
    port=587,
    user="mailer",
    password="secret",
    sender="noreply@shortscut.com",
    use_tls=True,
)


def _settings(app_env: str = "prod", **kw) -> Settings:
    base = Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
        base_url="https://portal.example.com",
        smtp=SMTP,
    )
    return replace(base, **kw)


def test_invitation_link_format() -> None:
    assert (
        invitation_link("https://portal.example.com/", "abc")
        == "https://portal.example.com/register/complete?token=abc"
    )


def test_build_invitation_email_has_text_and_html() -> None:
    msg = build_invitation_email(
        to_email="ada@b.com",
        name="Ada",
        token="tok123",
        base_url="https://portal.example.com",
        sender="noreply@shortscut.com",
    )
    assert msg["Subject"] == INVITATION_SUBJECT
    assert msg["To"] == "ada@b.com"
    assert msg.is_multipart()

    text = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "Hello Ada" in text
    assert "https://portal.example.com/register/complete?token=tok123" in text
    assert "expire in 7 days" in text
    assert 'href="https://portal.example.com/register/complete?token=tok123"' in html


def test_html_part_escapes_invitee_name() -> None:
    msg = build_invitation_email(
        to_email="tom@b.com",
        name="<b>Tom</b> & Jerry",
        token="tok123",
        base_url="https://portal.example.com",
        sender="noreply@shortscut.com",
    )

    text = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "<b>Tom</b>" not in html
    assert "Hello &lt;b&gt;Tom&lt;/b&gt; &amp; Jerry," in html
    assert "Hello <b>Tom</b> & Jerry," in text


def test_dev_mode_logs_instead_of_sending(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def _fail(*_args, **_kwargs) -> None:
        raise AssertionError("must not send in dev")

    monkeypatch.setattr(email_service, "send_message", _fail)

    with caplog.at_level(logging.INFO, logger="portal.services.email_service"):
        outcome = deliver_invitation_email(
            _settings("dev"), to_email="ada@b.com", name="Ada", token="tok"
        )

    assert outcome == "logged"
    assert "Email not sent (dev mode)" in caplog.text


def test_dev_mode_sends_when_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    sent = []
    monkeypatch.setattr(email_service, "send_message", lambda smtp, msg: sent.append(msg))

    outcome = deliver_invitation_email(
        _settings("dev", send_emails=True), to_email="ada@b.com", name="Ada", token="t"
    )

    assert outcome == "sent"
    assert sent[0]["To"] == "ada@b.com"


def test_unconfigured_smtp_skips(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        email_service,
        "send_message",
        lambda *_: (_ for _ in ()).throw(AssertionError("must not send")),
    )
    settings = _settings(smtp=replace(SMTP, host=""))

    assert (
        deliver_invitation_email(settings, to_email="a@b.com", name="A", token="t")
        == "skipped"
    )


def test_smtp_failure_propagates(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(smtp, msg) -> None:
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(email_service, "send_message", _boom)

    with pytest.raises(smtplib.SMTPException):
        deliver_invitation_email(_settings(), to_email="a@b.com", name="A", token="t")
