"""Per-IP rate limiting for the webhook receiver using slowapi."""

import logging

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from onramp_notify.config import settings

logger = logging.getLogger(__name__)

# Fixed window per client IP, shared through Redis when configured
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
    headers_enabled=True,
    enabled=settings.rate_limit_enabled,
)


def webhook_rate_limit() -> str:
    return f"{settings.rate_limit_webhooks_per_minute}/minute"


def setup_rate_limiter(app: FastAPI) -> None:
    """Attach the slowapi limiter and its 429 handler to the app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    if settings.rate_limit_enabled:
        logger.info(
            "Rate limiter configured (webhooks=%d/min, storage=%s)",
            settings.rate_limit_webhooks_per_minute,
            "redis" if settings.redis_url else "memory",
        )
