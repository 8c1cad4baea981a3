"""Tests for hashing, settings validation and error rendering."""

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.core.errors import EmailExists, InvalidCredentials
from app.core.security import PasswordHasher, decode_token, encode_token, generate_token_hex
from app.logging_config import redact_email

ACCESS = "a" * 32
REFRESH = "r" * 32


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(memory_cost=1024, time_cost=1, parallelism=1)


def test_hash_is_argon2id(hasher: PasswordHasher):
    hashed = hasher.hash("correct horse")
    assert hashed.startswith("$argon2id$")
    assert hasher.verify(hashed, "correct horse")
    assert not hasher.verify(hashed, "wrong horse")


def test_same_secret_hashes_differently(hasher: PasswordHasher):
    assert hasher.hash("salted") != hasher.hash("salted")


def test_malformed_hash_is_a_mismatch(hasher: PasswordHasher):
    assert hasher.verify("not-a-hash", "anything") is False


def test_verify_dummy_never_matches(hasher: PasswordHasher):
    assert hasher.verify_dummy("anything") is False


@pytest.mark.asyncio
async def test_async_helpers(hasher: PasswordHasher):
    hashed = await hasher.hash_async("threaded")
    assert await hasher.verify_async(hashed, "threaded")
    assert await hasher.verify_dummy_async("threaded") is False


def test_decode_rejects_wrong_secret():
    token = encode_token({"sub": "x"}, ACCESS)
    assert decode_token(token, ACCESS) == {"sub": "x"}
    assert decode_token(token, REFRESH) is None


def test_token_hex_length():
    assert len(generate_token_hex()) == 64
    assert generate_token_hex() != generate_token_hex()


def _settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "jwt_access_secret": ACCESS,
        "jwt_refresh_secret": REFRESH,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_settings_accept_distinct_long_secrets():
    config = _settings()
    assert config.jwt_algorithm == "HS256"


def test_settings_reject_short_secret():
    with pytest.raises(ValidationError, match="at least 32"):
        _settings(jwt_refresh_secret="short")


def test_settings_reject_shared_secret():
    with pytest.raises(ValidationError, match="must differ"):
        _settings(jwt_refresh_secret=ACCESS)


def test_cors_origin_list():
    config = _settings(cors_origins="http://a.test, http://b.test")
    assert config.cors_origin_list == ["http://a.test", "http://b.test"]


def test_problem_rendering():
    problem = InvalidCredentials().to_problem(instance="/api/v1/auth/login")
    assert problem == {
        "type": "https://blockbot.dev/errors/auth/invalid-credentials",
        "title": "Invalid Credentials",
        "status": 401,
        "detail": "Email or password is incorrect",
        "instance": "/api/v1/auth/login",
    }


def test_conflict_status():
    exc = EmailExists()
    assert exc.status_code == 409
    assert "instance" not in exc.to_problem()


def test_redact_email():
    assert redact_email("someone@example.com") == "so***@example.com"
    assert redact_email("nonsense") == "redacted"
