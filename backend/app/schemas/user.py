import uuid
from datetime import datetime

from app.schemas.base import CamelModel


class UserResponse(CamelModel):
    id: uuid.UUID
    email: str
    org_id: uuid.UUID
    email_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}
