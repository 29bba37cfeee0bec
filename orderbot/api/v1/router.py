"""Main router for API v1."""

from fastapi import APIRouter

from orderbot.api.v1.routes.sessions import router as sessions_router
from orderbot.api.v1.routes.webhook import router as webhook_router

api_router = APIRouter()

api_router.include_router(webhook_router, tags=["messages"])
api_router.include_router(sessions_router, tags=["sessions"])
