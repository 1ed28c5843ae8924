"""Email dispatch tests."""

import pytest

from muster.services.email_service import (
    ConsoleMailer,
    EmailDispatcher,
    HttpMailer,
    build_mailer,
)

from conftest import FailingMailer, make_settings


@pytest.mark.asyncio
async def test_welcome_links_to_verification(email, mailer):
    await email.send_welcome("Ada", "ada@example.com", "token-123")
    [message] = mailer.to("ada@example.com")
    assert message.to_name == "Ada"
    assert "http://muster.test/verify-account/token-123" in message.text


@pytest.mark.asyncio
async def test_forgot_password_links_to_reset(email, mailer):
    await email.send_forgot_password("Ada", "ada@example.com", "reset-456")
    [message] = mailer.to("ada@example.com")
    assert "http://muster.test/reset-password/reset-456" in message.text


@pytest.mark.asyncio
async def test_transport_failure_is_swallowed():
    dispatcher = EmailDispatcher(FailingMailer(), "http://muster.test/")
    await dispatcher.send_password_update("Ada", "ada@example.com")


def test_build_mailer_selects_backend():
    assert isinstance(build_mailer(make_settings()), ConsoleMailer)

    mailer = build_mailer(
        make_settings(mail_backend="http", mail_api_url="https://mail.example.com/send")
    )
    assert isinstance(mailer, HttpMailer)
    assert mailer.url == "https://mail.example.com/send"
