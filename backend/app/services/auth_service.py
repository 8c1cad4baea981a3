"""Register, login, refresh and logout on top of the token components."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EmailExists, InvalidCredentials, InvalidRefreshToken
from app.core.security import PasswordHasher
from app.logging_config import redact_email
from app.models.org import Org
from app.models.user import User
from app.services.token_service import RevocationStore, TokenIssuer, TokenPair, TokenVerifier

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        revocations: RevocationStore,
    ):
        self._hasher = hasher
        self._issuer = issuer
        self._verifier = verifier
        self._revocations = revocations

    async def register(
        self, db: AsyncSession, email: str, password: str, org_name: str
    ) -> tuple[User, TokenPair]:
        result = await db.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExists()

        password_hash = await self._hasher.hash_async(password)

        org = Org(name=org_name)
        db.add(org)
        await db.flush()

        user = User(
            org_id=org.id,
            email=email,
            password_hash=password_hash,
            email_verified=False,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await db.rollback()
            raise EmailExists()

        tokens = await self._issuer.issue(db, user)
        logger.info(
            f"Registered {redact_email(email)}",
            extra={"user_id": str(user.id), "org_id": str(org.id)},
        )
        return user, tokens

    async def login(self, db: AsyncSession, email: str, password: str) -> tuple[User, TokenPair]:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        # Unknown email, passwordless account and wrong password look the same
        if user is None or not user.password_hash:
            await self._hasher.verify_dummy_async(password)
            raise InvalidCredentials()
        if not await self._hasher.verify_async(user.password_hash, password):
            raise InvalidCredentials()

        tokens = await self._issuer.issue(db, user)
        return user, tokens

    async def refresh(self, db: AsyncSession, refresh_token: str) -> TokenPair:
        """Spend a refresh token and issue a fresh pair."""
        user_id = await self._verifier.verify_refresh(db, refresh_token)

        user = await db.get(User, user_id)
        if user is None:
            raise InvalidRefreshToken()

        return await self._issuer.issue(db, user)

    async def logout(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        return await self._revocations.revoke_all(db, user_id)
