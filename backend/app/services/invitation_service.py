"""Org invitations (single use) and shareable invite links (multi use).

Both kinds store only an Argon2id hash of their token, so acceptance has to
scan the live candidates and verify each one. On total failure one extra
verify runs against a dummy hash, which makes "nothing pending" take at least
as long as "something pending, no match". A hit returns straight away, so
match position still shows in the latency.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import INVITE_EXPIRY_DAYS
from app.core.security import PasswordHasher
from app.logging_config import redact_email
from app.models.invite import Invitation, InviteLink
from app.models.org import Org
from app.models.user import User
from app.services.email_service import EmailSender

logger = logging.getLogger(__name__)

INVALID_INVITATION_MESSAGE = "Invalid or expired invitation"
INVALID_INVITE_LINK_MESSAGE = "Invalid or expired invite link"


@dataclass(frozen=True)
class AcceptResult:
    success: bool
    org_id: uuid.UUID | None = None
    error: str | None = None


@dataclass(frozen=True)
class InvitationResult:
    type: str  # "invited" or "existing"
    email: str | None = None
    user_id: uuid.UUID | None = None


@dataclass(frozen=True)
class ShareableLinkResult:
    id: uuid.UUID
    url: str
    expires_at: datetime


def generate_invite_token() -> str:
    # 24 random bytes -> 32 URL-safe characters
    return secrets.token_urlsafe(24)


class InvitationTokenMatcher:
    def __init__(self, hasher: PasswordHasher, email_sender: EmailSender, app_url: str = ""):
        self._hasher = hasher
        self._email_sender = email_sender
        self._app_url = app_url.rstrip("/")

    # ------------------------------------------------------------------
    # Issuing
    # ------------------------------------------------------------------

    async def create_invitation(
        self,
        db: AsyncSession,
        org_id: uuid.UUID,
        email: str,
        invited_by_id: uuid.UUID,
        role: str | None = None,
    ) -> InvitationResult:
        """Invite an email address, or move an existing account straight into the org."""
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()

        org = await db.get(Org, org_id)
        inviter = await db.get(User, invited_by_id)

        if existing is not None:
            if existing.org_id != org_id:
                await self._assign_org(db, existing.id, org_id)
                logger.info(
                    f"Existing user {redact_email(email)} moved into org on invite",
                    extra={"user_id": str(existing.id), "org_id": str(org_id)},
                )
                if org and inviter:
                    await self._email_sender.send_added_to_org(email, org.name, inviter.email)
            return InvitationResult(type="existing", user_id=existing.id)

        token = generate_invite_token()
        db.add(
            Invitation(
                org_id=org_id,
                email=email,
                token_hash=await self._hasher.hash_async(token),
                role=role,
                invited_by_id=invited_by_id,
                expires_at=datetime.now(UTC) + timedelta(days=INVITE_EXPIRY_DAYS),
            )
        )
        await db.flush()

        org_name = org.name if org else "an organization"
        await self._email_sender.send_invitation(
            email, token, org_name, inviter.email if inviter else None
        )
        return InvitationResult(type="invited", email=email)

    async def create_invite_link(
        self,
        db: AsyncSession,
        org_id: uuid.UUID,
        created_by_id: uuid.UUID,
        role: str | None = None,
    ) -> ShareableLinkResult:
        """Create a shareable link. The plaintext token only exists in the returned URL."""
        token = generate_invite_token()
        expires_at = datetime.now(UTC) + timedelta(days=INVITE_EXPIRY_DAYS)
        link = InviteLink(
            org_id=org_id,
            token_hash=await self._hasher.hash_async(token),
            role=role,
            created_by_id=created_by_id,
            expires_at=expires_at,
            usage_count=0,
        )
        db.add(link)
        await db.flush()

        return ShareableLinkResult(
            id=link.id,
            url=f"{self._app_url}/join/{token}",
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------
    # Accepting
    # ------------------------------------------------------------------

    async def accept_invitation(self, db: AsyncSession, token: str, user_id: uuid.UUID) -> AcceptResult:
        now = datetime.now(UTC)
        result = await db.execute(
            select(Invitation).where(
                Invitation.expires_at > now,
                Invitation.accepted_at.is_(None),
            )
        )

        for invitation in result.scalars().all():
            if not await self._hasher.verify_async(invitation.token_hash, token):
                continue

            accepted = await db.execute(
                update(Invitation)
                .where(Invitation.id == invitation.id, Invitation.accepted_at.is_(None))
                .values(accepted_at=now)
                .execution_options(synchronize_session=False)
            )
            if accepted.rowcount != 1:
                logger.warning(
                    "Invitation accepted concurrently by another request",
                    extra={"user_id": str(user_id), "org_id": str(invitation.org_id)},
                )
                break

            await self._assign_org(db, user_id, invitation.org_id)
            logger.info(
                "Invitation accepted",
                extra={"user_id": str(user_id), "org_id": str(invitation.org_id)},
            )
            return AcceptResult(success=True, org_id=invitation.org_id)

        await self._hasher.verify_dummy_async(token)
        return AcceptResult(success=False, error=INVALID_INVITATION_MESSAGE)

    async def accept_invite_link(self, db: AsyncSession, token: str, user_id: uuid.UUID) -> AcceptResult:
        result = await db.execute(select(InviteLink).where(InviteLink.expires_at > datetime.now(UTC)))

        for link in result.scalars().all():
            if not await self._hasher.verify_async(link.token_hash, token):
                continue

            # Increment in SQL; a read-modify-write here loses concurrent uses
            await db.execute(
                update(InviteLink)
                .where(InviteLink.id == link.id)
                .values(usage_count=InviteLink.usage_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self._assign_org(db, user_id, link.org_id)
            logger.info(
                "Invite link accepted",
                extra={"user_id": str(user_id), "org_id": str(link.org_id)},
            )
            return AcceptResult(success=True, org_id=link.org_id)

        await self._hasher.verify_dummy_async(token)
        return AcceptResult(success=False, error=INVALID_INVITE_LINK_MESSAGE)

    async def accept(self, db: AsyncSession, token: str, user_id: uuid.UUID) -> AcceptResult:
        """Try the token as an email invitation first, then as a shareable link."""
        result = await self.accept_invitation(db, token, user_id)
        if result.success:
            return result
        return await self.accept_invite_link(db, token, user_id)

    async def _assign_org(self, db: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID) -> None:
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(org_id=org_id)
        )
