import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Org(Base):
    """Tenant boundary. Created alongside its first user at registration."""

    __tablename__ = "orgs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    members: Mapped[list["User"]] = relationship(back_populates="org")  # noqa: F821
    invitations: Mapped[list["Invitation"]] = relationship(  # noqa: F821
        back_populates="org", cascade="all, delete-orphan", passive_deletes=True
    )
    invite_links: Mapped[list["InviteLink"]] = relationship(  # noqa: F821
        back_populates="org", cascade="all, delete-orphan", passive_deletes=True
    )
