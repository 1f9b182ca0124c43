"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from onramp_notify.errors.exceptions import AuthenticationError
from onramp_notify.push.pending import PendingNotificationStore
from onramp_notify.push.token_store import TokenStore
from onramp_notify.services.webhook_processor import WebhookProcessor


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_pending_store(request: Request) -> PendingNotificationStore:
    return request.app.state.pending_store


def get_webhook_processor(request: Request) -> WebhookProcessor:
    """Build a processor over the app's shared store and dispatcher."""
    state = request.app.state
    return WebhookProcessor(
        token_store=state.token_store,
        dispatcher=state.dispatcher,
        pending_store=state.pending_store,
    )


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


# Type aliases for dependency injection
TokenStoreDep = Annotated[TokenStore, Depends(get_token_store)]
PendingStoreDep = Annotated[PendingNotificationStore, Depends(get_pending_store)]
ProcessorDep = Annotated[WebhookProcessor, Depends(get_webhook_processor)]
TraceId = Annotated[str, Depends(get_trace_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
