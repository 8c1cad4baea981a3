from app.models.invite import Invitation, InviteLink
from app.models.magic_link import MagicLink
from app.models.org import Org
from app.models.refresh_token import RefreshToken
from app.models.user import User

__all__ = [
    "Org",
    "User",
    "RefreshToken",
    "MagicLink",
    "Invitation",
    "InviteLink",
]
