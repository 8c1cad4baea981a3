"""Tests for passwordless magic-link login."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import Services
from app.core.errors import InvalidMagicLink
from app.models.magic_link import MagicLink
from app.models.user import User
from app.services.magic_link_service import MAGIC_LINK_SENT_MESSAGE, digest_magic_token


@pytest.mark.asyncio
async def test_request_for_unknown_email_is_indistinguishable(client: AsyncClient, outbox):
    response = await client.post("/api/v1/auth/magic-link/request", json={"email": "ghost@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == MAGIC_LINK_SENT_MESSAGE
    assert outbox.sent == []


@pytest.mark.asyncio
async def test_magic_link_verifies_exactly_once(client: AsyncClient, register_user, outbox):
    registered = await register_user("magic@example.com")

    response = await client.post("/api/v1/auth/magic-link/request", json={"email": "magic@example.com"})
    assert response.json()["message"] == MAGIC_LINK_SENT_MESSAGE
    token = outbox.last_token("magic_link")
    assert len(token) == 64

    first = await client.get("/api/v1/auth/magic-link/verify", params={"token": token})
    assert first.status_code == 200
    data = first.json()
    assert data["user"]["id"] == registered["user"]["id"]
    assert data["accessToken"] and data["refreshToken"]

    second = await client.get("/api/v1/auth/magic-link/verify", params={"token": token})
    assert second.status_code == 401
    assert second.json()["type"].endswith("auth/invalid-magic-link")


@pytest.mark.asyncio
async def test_magic_link_marks_email_verified(client: AsyncClient, register_user, outbox):
    registered = await register_user("verify-me@example.com")
    await client.post("/api/v1/auth/magic-link/request", json={"email": "verify-me@example.com"})
    token = outbox.last_token("magic_link")
    await client.get("/api/v1/auth/magic-link/verify", params={"token": token})

    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {registered['accessToken']}"}
    )
    assert me.json()["emailVerified"] is True


@pytest.mark.asyncio
async def test_magic_link_refresh_token_is_usable(client: AsyncClient, register_user, outbox):
    await register_user("chain@example.com")
    await client.post("/api/v1/auth/magic-link/request", json={"email": "chain@example.com"})
    verified = await client.get(
        "/api/v1/auth/magic-link/verify", params={"token": outbox.last_token("magic_link")}
    )

    response = await client.post(
        "/api/v1/auth/refresh", json={"refreshToken": verified.json()["refreshToken"]}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_verify_missing_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/magic-link/verify")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_stored_token_is_a_digest(db: AsyncSession, services: Services, register_user, outbox):
    await register_user("digest@example.com")
    await services.magic_links.request(db, "digest@example.com")
    await db.commit()
    token = outbox.last_token("magic_link")

    row = (await db.execute(select(MagicLink))).scalar_one()
    assert row.token_hash != token
    assert row.token_hash == digest_magic_token(token)
    assert row.used_at is None


@pytest.mark.asyncio
async def test_expired_magic_link_rejected(db: AsyncSession, services: Services, register_user, outbox):
    await register_user("late@example.com")
    await services.magic_links.request(db, "late@example.com")
    await db.execute(update(MagicLink).values(expires_at=datetime.now(UTC) - timedelta(seconds=1)))
    await db.commit()

    with pytest.raises(InvalidMagicLink):
        await services.magic_links.verify(db, outbox.last_token("magic_link"))


@pytest.mark.asyncio
async def test_unknown_magic_link_rejected(db: AsyncSession, services: Services):
    with pytest.raises(InvalidMagicLink):
        await services.magic_links.verify(db, "0" * 64)


@pytest.mark.asyncio
async def test_verify_service_returns_user_and_tokens(
    db: AsyncSession, services: Services, register_user, outbox
):
    await register_user("svc@example.com")
    await services.magic_links.request(db, "svc@example.com")
    await db.commit()

    user, tokens = await services.magic_links.verify(db, outbox.last_token("magic_link"))
    await db.commit()

    assert user.email == "svc@example.com"
    assert user.email_verified is True
    assert services.verifier.verify_access(tokens.access_token).user_id == user.id

    stored = (await db.execute(select(User).where(User.id == user.id))).scalar_one()
    assert stored.email_verified is True


@pytest.mark.asyncio
async def test_concurrent_verify_single_winner(session_factory, services: Services, register_user, outbox):
    await register_user("double-click@example.com")
    async with session_factory() as setup:
        await services.magic_links.request(setup, "double-click@example.com")
        await setup.commit()
    token = outbox.last_token("magic_link")

    async def attempt() -> bool:
        async with session_factory() as session:
            try:
                await services.magic_links.verify(session, token)
            except InvalidMagicLink:
                await session.rollback()
                return False
            await session.commit()
            return True

    outcomes = await asyncio.gather(attempt(), attempt(), attempt())
    assert sum(outcomes) == 1
