from fastapi import APIRouter
from . import streaming, watch_history

api_router = APIRouter()

api_router.include_router(streaming.router, prefix="/stream", tags=["streaming"])
api_router.include_router(watch_history.router, prefix="/users", tags=["watch-history"])

__all__ = ["api_router"]
