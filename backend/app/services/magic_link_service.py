"""Single-use passwordless login tokens."""

import hashlib
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import MAGIC_LINK_EXPIRE_SECONDS
from app.core.errors import InvalidMagicLink
from app.core.security import generate_token_hex
from app.models.magic_link import MagicLink
from app.models.user import User
from app.services.email_service import EmailSender
from app.services.token_service import TokenIssuer, TokenPair

logger = logging.getLogger(__name__)

MAGIC_LINK_SENT_MESSAGE = "If an account exists, a magic link has been sent"


def digest_magic_token(token: str) -> str:
    # 256-bit random tokens: a fast digest is enough, no need for Argon2 here
    return hashlib.sha256(token.encode()).hexdigest()


class MagicLinkService:
    def __init__(self, issuer: TokenIssuer, email_sender: EmailSender):
        self._issuer = issuer
        self._email_sender = email_sender

    async def request(self, db: AsyncSession, email: str) -> str:
        """Create and mail a link if the account exists. Same answer either way."""
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            return MAGIC_LINK_SENT_MESSAGE

        token = generate_token_hex(32)
        db.add(
            MagicLink(
                user_id=user.id,
                token_hash=digest_magic_token(token),
                expires_at=datetime.now(UTC) + timedelta(seconds=MAGIC_LINK_EXPIRE_SECONDS),
            )
        )
        await db.flush()

        if not await self._email_sender.send_magic_link(email, token):
            logger.warning("Magic link created but email delivery failed", extra={"user_id": str(user.id)})
        return MAGIC_LINK_SENT_MESSAGE

    async def verify(self, db: AsyncSession, token: str) -> tuple[User, TokenPair]:
        now = datetime.now(UTC)
        token_hash = digest_magic_token(token)

        result = await db.execute(
            select(MagicLink).where(
                MagicLink.token_hash == token_hash,
                MagicLink.expires_at > now,
                MagicLink.used_at.is_(None),
            )
        )
        magic_link = result.scalar_one_or_none()
        if magic_link is None:
            raise InvalidMagicLink()

        # Conditional on used_at still being NULL so two clicks can't both win
        consumed = await db.execute(
            update(MagicLink)
            .where(MagicLink.id == magic_link.id, MagicLink.used_at.is_(None))
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            raise InvalidMagicLink()

        await db.execute(
            update(User)
            .where(User.id == magic_link.user_id)
            .values(email_verified=True)
        )

        user = await db.get(User, magic_link.user_id, populate_existing=True)
        if user is None:
            # Row cascade makes this unreachable short of a concurrent delete
            raise RuntimeError(f"User {magic_link.user_id} for magic link not found")

        tokens = await self._issuer.issue(db, user)
        logger.info("Magic link consumed", extra={"user_id": str(user.id)})
        return user, tokens
