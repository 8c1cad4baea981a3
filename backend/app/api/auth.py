import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import Services, get_current_claims, get_current_user, get_services
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MagicLinkRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserSummary,
)
from app.schemas.user import UserResponse
from app.services.token_service import AccessClaims, TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserSummary.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


# ---------------------------------------------------------------------------
# Password auth
# ---------------------------------------------------------------------------


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user and their organization",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    user, tokens = await services.auth.register(db, request.email, request.password, request.org_name)
    return _auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    user, tokens = await services.auth.login(db, request.email, request.password)
    return _auth_response(user, tokens)


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse, summary="Rotate a refresh token")
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Exchange a refresh token for a new pair. The presented token is spent."""
    tokens = await services.auth.refresh(db, request.refresh_token)
    return TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Log out of every session")
async def logout(
    claims: AccessClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Revoke all refresh tokens of the caller. Access tokens run out on their own."""
    await services.auth.logout(db, claims.user_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse, summary="Get current user")
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


# ---------------------------------------------------------------------------
# Magic link
# ---------------------------------------------------------------------------


@router.post("/magic-link/request", response_model=MessageResponse, summary="Email a sign-in link")
async def request_magic_link(
    request: MagicLinkRequest,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    message = await services.magic_links.request(db, request.email)
    return MessageResponse(message=message)


@router.get("/magic-link/verify", response_model=AuthResponse, summary="Sign in with a magic link")
async def verify_magic_link(
    token: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    user, tokens = await services.magic_links.verify(db, token)
    return _auth_response(user, tokens)
