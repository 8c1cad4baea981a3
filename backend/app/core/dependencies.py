from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.errors import InvalidToken, MissingToken
from app.core.security import PasswordHasher
from app.database import get_db
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.email_service import EmailSender
from app.services.invitation_service import InvitationTokenMatcher
from app.services.magic_link_service import MagicLinkService
from app.services.token_service import AccessClaims, RevocationStore, TokenIssuer, TokenVerifier

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    hasher: PasswordHasher
    issuer: TokenIssuer
    verifier: TokenVerifier
    revocations: RevocationStore
    auth: AuthService
    magic_links: MagicLinkService
    invitations: InvitationTokenMatcher
    email: EmailSender


def build_services(settings: Settings, email_sender: EmailSender | None = None) -> Services:
    """Wire every auth component from settings. Called once by the app lifespan."""
    hasher = PasswordHasher.from_settings(settings)
    issuer = TokenIssuer(
        hasher,
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
    )
    verifier = TokenVerifier(
        hasher,
        access_secret=settings.jwt_access_secret,
        refresh_secret=settings.jwt_refresh_secret,
        algorithm=settings.jwt_algorithm,
    )
    revocations = RevocationStore()
    email = email_sender or EmailSender.from_settings(settings)
    return Services(
        hasher=hasher,
        issuer=issuer,
        verifier=verifier,
        revocations=revocations,
        auth=AuthService(hasher, issuer, verifier, revocations),
        magic_links=MagicLinkService(issuer, email),
        invitations=InvitationTokenMatcher(hasher, email, app_url=settings.app_url),
        email=email,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> AccessClaims:
    """Resolve the Bearer access token. Stateless: no database hit."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise MissingToken()
    return services.verifier.verify_access(credentials.credentials)


async def get_current_user(
    claims: AccessClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, claims.user_id)
    if user is None:
        raise InvalidToken()
    return user
