"""API routes for version 1."""

from fastapi import APIRouter

from relsync.api.v1.endpoints import sync, webhooks

api_router = APIRouter()
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
