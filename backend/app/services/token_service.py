"""Access/refresh token issuance, verification, rotation and revocation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import ACCESS_TOKEN_EXPIRE_SECONDS, REFRESH_TOKEN_EXPIRE_SECONDS
from app.core.errors import InvalidRefreshToken, InvalidToken
from app.core.security import PasswordHasher, decode_token, encode_token, generate_token_hex
from app.models.refresh_token import RefreshToken
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AccessClaims:
    user_id: uuid.UUID
    org_id: uuid.UUID
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Mints signed token pairs and persists a hash of each refresh token."""

    def __init__(
        self,
        hasher: PasswordHasher,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
    ):
        self._hasher = hasher
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm

    async def issue(self, db: AsyncSession, user: User) -> TokenPair:
        now = int(datetime.now(UTC).timestamp())

        access_token = encode_token(
            {
                "sub": str(user.id),
                "org": str(user.org_id),
                "email": user.email,
                "iat": now,
                "exp": now + ACCESS_TOKEN_EXPIRE_SECONDS,
            },
            self._access_secret,
            self._algorithm,
        )
        refresh_token = encode_token(
            {
                "sub": str(user.id),
                "jti": generate_token_hex(16),
                "iat": now,
                "exp": now + REFRESH_TOKEN_EXPIRE_SECONDS,
            },
            self._refresh_secret,
            self._algorithm,
        )

        # Hash the whole signed string: a forged token reusing the jti can't match
        token_hash = await self._hasher.hash_async(refresh_token)
        db.add(
            RefreshToken(
                user_id=user.id,
                token_hash=token_hash,
                expires_at=datetime.fromtimestamp(now + REFRESH_TOKEN_EXPIRE_SECONDS, UTC),
            )
        )
        await db.flush()

        logger.debug("Issued token pair", extra={"user_id": str(user.id)})
        return TokenPair(access_token=access_token, refresh_token=refresh_token)


class TokenVerifier:
    def __init__(
        self,
        hasher: PasswordHasher,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
    ):
        self._hasher = hasher
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm

    def verify_access(self, token: str) -> AccessClaims:
        """Signature and expiry only. Revocation does not reach access tokens."""
        payload = decode_token(token, self._access_secret, self._algorithm)
        if payload is None:
            raise InvalidToken()

        try:
            return AccessClaims(
                user_id=uuid.UUID(payload["sub"]),
                org_id=uuid.UUID(payload["org"]),
                email=payload["email"],
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidToken()

    async def verify_refresh(self, db: AsyncSession, token: str) -> uuid.UUID:
        """Validate a refresh token and spend it.

        The envelope is checked first so malformed or expired tokens never
        reach the database. The matching row is removed with a conditional
        DELETE; if another request removed it first, this call fails.
        """
        payload = decode_token(token, self._refresh_secret, self._algorithm)
        if payload is None or not payload.get("jti"):
            raise InvalidRefreshToken()
        try:
            user_id = uuid.UUID(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise InvalidRefreshToken()

        result = await db.execute(
            select(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.expires_at > datetime.now(UTC),
            )
        )
        for stored in result.scalars().all():
            if not await self._hasher.verify_async(stored.token_hash, token):
                continue

            deleted = await db.execute(
                delete(RefreshToken)
                .where(RefreshToken.id == stored.id)
                .execution_options(synchronize_session=False)
            )
            if deleted.rowcount != 1:
                logger.warning(
                    "Refresh token spent by a concurrent request",
                    extra={"user_id": str(user_id)},
                )
                raise InvalidRefreshToken()
            return user_id

        # A well-signed, unexpired token with no live row was already rotated
        # or revoked. Possible reuse; only rejected for now.
        logger.warning(
            "Refresh token with valid signature matched no session (possible reuse)",
            extra={"user_id": str(user_id)},
        )
        raise InvalidRefreshToken()


class RevocationStore:
    async def revoke_all(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """Delete every refresh session of the user ("log out everywhere")."""
        result = await db.execute(
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            f"Revoked {result.rowcount} refresh session(s)",
            extra={"user_id": str(user_id)},
        )
        return result.rowcount
