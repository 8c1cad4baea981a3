import uuid
from datetime import datetime

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class InvitationCreateRequest(CamelModel):
    email: EmailStr
    role: str | None = Field(default=None, max_length=50)


class InviteLinkCreateRequest(CamelModel):
    role: str | None = Field(default=None, max_length=50)


class InvitationCreateResponse(CamelModel):
    type: str
    email: str | None = None
    user_id: uuid.UUID | None = None


class InviteLinkResponse(CamelModel):
    id: uuid.UUID
    url: str
    expires_at: datetime


class AcceptInvitationRequest(CamelModel):
    token: str = Field(min_length=1)


class AcceptInvitationResponse(CamelModel):
    success: bool
    org_id: uuid.UUID | None = None
    error: str | None = None
