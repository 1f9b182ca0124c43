"""Master API router."""

from fastapi import APIRouter

from onramp_notify.api.routes import health, push_tokens, webhooks

api_router = APIRouter()
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(webhooks.router)
api_router.include_router(push_tokens.router)
