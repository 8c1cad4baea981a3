from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import Services, get_current_claims, get_services
from app.core.errors import InvalidInvitation
from app.database import get_db
from app.schemas.invite import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationCreateRequest,
    InvitationCreateResponse,
    InviteLinkCreateRequest,
    InviteLinkResponse,
)
from app.services.token_service import AccessClaims

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post(
    "",
    response_model=InvitationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_none=True,
    summary="Invite an email address to the caller's org",
)
async def create_invitation(
    request: InvitationCreateRequest,
    claims: AccessClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = await services.invitations.create_invitation(
        db,
        org_id=claims.org_id,
        email=request.email,
        invited_by_id=claims.user_id,
        role=request.role,
    )
    return InvitationCreateResponse(type=result.type, email=result.email, user_id=result.user_id)


@router.post(
    "/links",
    response_model=InviteLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shareable invite link",
)
async def create_invite_link(
    request: InviteLinkCreateRequest,
    claims: AccessClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = await services.invitations.create_invite_link(
        db,
        org_id=claims.org_id,
        created_by_id=claims.user_id,
        role=request.role,
    )
    return InviteLinkResponse(id=result.id, url=result.url, expires_at=result.expires_at)


@router.post(
    "/accept",
    response_model=AcceptInvitationResponse,
    response_model_exclude_none=True,
    summary="Accept an invitation or invite link",
)
async def accept_invitation(
    request: AcceptInvitationRequest,
    claims: AccessClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    result = await services.invitations.accept(db, request.token, claims.user_id)
    if not result.success:
        failure = AcceptInvitationResponse(success=False, error=InvalidInvitation.detail)
        return JSONResponse(
            status_code=InvalidInvitation.status_code,
            content=failure.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
    return AcceptInvitationResponse(success=True, org_id=result.org_id)
