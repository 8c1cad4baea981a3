from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.invitations import router as invitations_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(invitations_router)
