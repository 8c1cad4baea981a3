"""Tests for Resend email delivery."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.services.email_service import RESEND_EMAILS_URL, EmailSender


def _sender(api_key: str = "re_test_key") -> EmailSender:
    return EmailSender(api_key=api_key, from_email="BlockBot <noreply@test>", app_url="http://app.test/")


@pytest.mark.asyncio
async def test_dev_mode_skips_http():
    sender = _sender(api_key="")
    assert not sender.is_configured

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as post:
        assert await sender.send_magic_link("dev@example.com", "abc123") is True
    post.assert_not_awaited()


@pytest.mark.asyncio
async def test_magic_link_posts_to_resend():
    sender = _sender()
    ok = httpx.Response(200, json={"id": "email_1"}, request=httpx.Request("POST", RESEND_EMAILS_URL))

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=ok) as post:
        assert await sender.send_magic_link("user@example.com", "abc123") is True

    args, kwargs = post.await_args
    assert args[0] == RESEND_EMAILS_URL
    assert kwargs["json"]["to"] == ["user@example.com"]
    assert "http://app.test/api/v1/auth/magic-link/verify?token=abc123" in kwargs["json"]["html"]
    assert kwargs["headers"]["Authorization"] == "Bearer re_test_key"


@pytest.mark.asyncio
async def test_invitation_escapes_org_name():
    sender = _sender()
    ok = httpx.Response(200, json={}, request=httpx.Request("POST", RESEND_EMAILS_URL))

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=ok) as post:
        await sender.send_invitation("new@example.com", "tok", "<Acme>", "boss@example.com")

    html = post.await_args.kwargs["json"]["html"]
    assert "&lt;Acme&gt;" in html
    assert "http://app.test/join?token=tok" in html


@pytest.mark.asyncio
async def test_rejected_send_returns_false():
    sender = _sender()
    bad = httpx.Response(422, text="invalid from", request=httpx.Request("POST", RESEND_EMAILS_URL))

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=bad):
        assert await sender.send_added_to_org("x@example.com", "Acme", "boss@example.com") is False


@pytest.mark.asyncio
async def test_network_error_returns_false():
    sender = _sender()

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, side_effect=httpx.ConnectError("down")):
        assert await sender.send_magic_link("x@example.com", "abc123") is False
