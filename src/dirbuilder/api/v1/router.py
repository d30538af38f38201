from fastapi import APIRouter

from src.dirbuilder.api.v1 import publishing

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(publishing.router)
