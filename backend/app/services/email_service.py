"""Transactional email through the Resend HTTP API."""

import logging
from html import escape

import httpx

from app.config import HTTP_TIMEOUT
from app.logging_config import redact_email

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class EmailSender:
    """Sends magic links and invitations. Without an API key, logs instead (dev mode).

    Delivery problems are logged and reported as ``False``; callers never see
    an exception, so a mail outage cannot change an auth response.
    """

    def __init__(self, api_key: str, from_email: str, app_url: str):
        self.api_key = api_key
        self.from_email = from_email
        self.app_url = app_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "EmailSender":
        return cls(
            api_key=settings.resend_api_key,
            from_email=settings.email_from,
            app_url=settings.app_url,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _send(self, to_email: str, subject: str, html: str) -> bool:
        if not self.is_configured:
            logger.info(f"Email not sent (dev mode): to={redact_email(to_email)} subject={subject!r}")
            return True

        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.post(
                    RESEND_EMAILS_URL,
                    json={
                        "from": self.from_email,
                        "to": [to_email],
                        "subject": subject,
                        "html": html,
                    },
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Exception sending email to {redact_email(to_email)}: {e}")
            return False

        if response.status_code >= 400:
            logger.error(
                f"Resend rejected email to {redact_email(to_email)}: "
                f"{response.status_code} {response.text}"
            )
            return False

        logger.info(f"Email sent to {redact_email(to_email)}: {subject!r}")
        return True

    async def send_magic_link(self, email: str, token: str) -> bool:
        url = f"{self.app_url}/api/v1/auth/magic-link/verify?token={token}"
        html = f"""
            <h1>Sign in to BlockBot</h1>
            <p>Click the link below to sign in. This link expires in 15 minutes.</p>
            <a href="{url}">Sign in to BlockBot</a>
            <p>If you didn't request this, you can safely ignore this email.</p>
        """
        return await self._send(email, "Sign in to BlockBot", html)

    async def send_invitation(
        self, email: str, token: str, org_name: str, inviter_email: str | None = None
    ) -> bool:
        url = f"{self.app_url}/join?token={token}"
        org = escape(org_name)
        if inviter_email:
            intro = f"<p>{escape(inviter_email)} has invited you to join their organization on BlockBot.</p>"
        else:
            intro = "<p>You have been invited to join an organization on BlockBot.</p>"
        html = f"""
            <h1>You're invited to join {org}</h1>
            {intro}
            <p>Click the link below to accept the invitation. This link expires in 7 days.</p>
            <a href="{url}">Accept Invitation</a>
            <p>If you didn't expect this invitation, you can safely ignore this email.</p>
        """
        return await self._send(email, f"You've been invited to join {org_name} on BlockBot", html)

    async def send_added_to_org(self, email: str, org_name: str, inviter_email: str) -> bool:
        html = f"""
            <h1>You've been added to {escape(org_name)}</h1>
            <p>{escape(inviter_email)} added you to their organization on BlockBot.</p>
            <a href="{self.app_url}">Open BlockBot</a>
        """
        return await self._send(email, f"You've been added to {org_name} on BlockBot", html)
