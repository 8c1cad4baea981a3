"""Typed authentication errors.

Every failure that crosses a module boundary carries an ``AuthErrorKind`` so
callers can match on ``exc.kind`` instead of parsing messages. The HTTP layer
renders these as RFC 7807 problem details (see ``app.main``).
"""

import enum

from fastapi import status

PROBLEM_TYPE_BASE = "https://blockbot.dev/errors/"


class AuthErrorKind(str, enum.Enum):
    INVALID_CREDENTIALS = "auth/invalid-credentials"
    INVALID_TOKEN = "auth/invalid-token"
    MISSING_TOKEN = "auth/missing-token"
    INVALID_REFRESH_TOKEN = "auth/invalid-refresh-token"
    INVALID_MAGIC_LINK = "auth/invalid-magic-link"
    INVALID_INVITATION = "invitations/invalid-token"
    EMAIL_EXISTS = "auth/email-exists"


class AuthError(Exception):
    kind: AuthErrorKind
    status_code: int = status.HTTP_401_UNAUTHORIZED
    title: str = "Authentication Failed"
    detail: str = "Authentication failed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)

    def to_problem(self, instance: str | None = None) -> dict:
        problem = {
            "type": f"{PROBLEM_TYPE_BASE}{self.kind.value}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if instance:
            problem["instance"] = instance
        return problem


class InvalidCredentials(AuthError):
    kind = AuthErrorKind.INVALID_CREDENTIALS
    title = "Invalid Credentials"
    detail = "Email or password is incorrect"


class InvalidToken(AuthError):
    kind = AuthErrorKind.INVALID_TOKEN
    title = "Invalid Authentication Token"
    detail = "The provided access token is invalid or expired"


class MissingToken(AuthError):
    kind = AuthErrorKind.MISSING_TOKEN
    title = "Missing Authentication Token"
    detail = "Authorization header with Bearer token is required"


class InvalidRefreshToken(AuthError):
    kind = AuthErrorKind.INVALID_REFRESH_TOKEN
    title = "Invalid Refresh Token"
    detail = "The refresh token is invalid or has been revoked"


class InvalidMagicLink(AuthError):
    kind = AuthErrorKind.INVALID_MAGIC_LINK
    title = "Invalid Magic Link"
    detail = "This magic link is invalid or has expired"


class InvalidInvitation(AuthError):
    kind = AuthErrorKind.INVALID_INVITATION
    title = "Invalid Invitation"
    detail = "The invitation token is invalid or has expired"


class EmailExists(AuthError):
    kind = AuthErrorKind.EMAIL_EXISTS
    status_code = status.HTTP_409_CONFLICT
    title = "Email Already Registered"
    detail = "An account with this email already exists"
