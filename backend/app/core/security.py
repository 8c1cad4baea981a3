import asyncio
import secrets

from argon2 import PasswordHasher as Argon2Hasher
from argon2 import Type
from argon2.exceptions import InvalidHash, VerificationError
from jose import JWTError, jwt


class PasswordHasher:
    """Argon2id hashing for passwords and every persisted token.

    The cost parameters are fixed at construction. Verification is the
    dominant cost of every token check, so the async helpers push the work
    onto a worker thread instead of blocking the event loop.
    """

    def __init__(self, memory_cost: int = 65536, time_cost: int = 3, parallelism: int = 4):
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        # Same parameters as real hashes, so a verify against it costs the same
        self._dummy_hash = self._hasher.hash(secrets.token_hex(16))

    @classmethod
    def from_settings(cls, settings) -> "PasswordHasher":
        return cls(
            memory_cost=settings.argon2_memory_cost,
            time_cost=settings.argon2_time_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash(self, secret: str) -> str:
        return self._hasher.hash(secret)

    def verify(self, stored_hash: str, secret: str) -> bool:
        try:
            return self._hasher.verify(stored_hash, secret)
        except (VerificationError, InvalidHash):
            return False

    def verify_dummy(self, secret: str) -> bool:
        """Burn one full-cost verify. Always returns False."""
        self.verify(self._dummy_hash, secret)
        return False

    async def hash_async(self, secret: str) -> str:
        return await asyncio.to_thread(self.hash, secret)

    async def verify_async(self, stored_hash: str, secret: str) -> bool:
        return await asyncio.to_thread(self.verify, stored_hash, secret)

    async def verify_dummy_async(self, secret: str) -> bool:
        return await asyncio.to_thread(self.verify_dummy, secret)


def encode_token(claims: dict, secret: str, algorithm: str = "HS256") -> str:
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> dict | None:
    """Check signature and expiry. Returns the claims, or None if either fails."""
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def generate_token_hex(num_bytes: int = 32) -> str:
    return secrets.token_hex(num_bytes)
