"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onramp_notify.config import Settings, settings
from onramp_notify.logging_config import configure_logging
from onramp_notify.push.apns import ApnsClient
from onramp_notify.push.dispatcher import NotificationDispatcher
from onramp_notify.push.expo import ExpoPushClient
from onramp_notify.push.pending import build_pending_store
from onramp_notify.push.token_store import RedisTokenStore, build_token_store

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


def build_dispatcher(http_client: httpx.AsyncClient, config: Settings = settings) -> NotificationDispatcher:
    """Wire the relay channel and, when credentials are present, the APNs channel."""
    apns = None
    if config.apns_configured:
        apns = ApnsClient(
            key_id=config.apns_key_id,
            team_id=config.apns_team_id,
            private_key=config.apns_private_key,
            bundle_id=config.apns_bundle_id,
            http_client=http_client,
        )
    else:
        logger.info("APNs credentials not configured, using Expo relay only")
    return NotificationDispatcher(expo=ExpoPushClient(http_client, config.expo_push_url), apns=apns)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    if not settings.verification_enabled:
        logger.warning("ONRAMP_WEBHOOK_SECRET not set - webhook signatures will NOT be verified (INSECURE)")

    # Outbound push calls must finish well inside the provider's delivery timeout
    http_client = httpx.AsyncClient(timeout=settings.push_timeout_seconds, http2=True)

    token_store = build_token_store(settings.redis_url)
    redis = token_store.redis if isinstance(token_store, RedisTokenStore) else None

    app.state.http_client = http_client
    app.state.redis = redis
    app.state.token_store = token_store
    app.state.pending_store = build_pending_store(
        redis,
        max_per_user=settings.pending_max_per_user,
        ttl_seconds=settings.pending_ttl_seconds,
    )
    app.state.dispatcher = build_dispatcher(http_client)

    logger.info(
        "Onramp notify API started (token_store=%s, apns=%s)",
        token_store.backend,
        "enabled" if settings.apns_configured else "disabled",
    )
    yield

    # Shutdown
    await http_client.aclose()
    await token_store.close()
    logger.info("Onramp notify API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Onramp Notify API",
        version="1.0.0",
        description="Receives onramp transaction webhooks and delivers push notifications.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from onramp_notify.api.middleware.auth import AuthMiddleware
    from onramp_notify.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from onramp_notify.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from onramp_notify.api.middleware.rate_limit import setup_rate_limiter
    setup_rate_limiter(app)

    from onramp_notify.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
