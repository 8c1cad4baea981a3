import uuid

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, description="Password must be at least 8 characters")
    org_name: str = Field(min_length=1, max_length=255)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class MagicLinkRequest(CamelModel):
    email: EmailStr


class UserSummary(CamelModel):
    id: uuid.UUID
    email: str
    org_id: uuid.UUID

    model_config = {"from_attributes": True}


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    user: UserSummary


class MessageResponse(CamelModel):
    message: str
