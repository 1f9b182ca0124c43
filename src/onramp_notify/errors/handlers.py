"""FastAPI exception handlers producing ``{"error": ...}`` responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from onramp_notify.errors.exceptions import AuthorizationError, OnrampError, WebhookSignatureError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(OnrampError)
    async def onramp_error_handler(request: Request, exc: OnrampError):
        # Webhook callers get exactly {"error": message}
        if isinstance(exc, WebhookSignatureError):
            return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

        trace_id = getattr(request.state, "trace_id", "unknown")
        if isinstance(exc, AuthorizationError):
            user = getattr(request.state, "user", {}) or {}
            logger.warning(
                "access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "trace_id": trace_id,
                    "user_sub": user.get("sub", "anonymous"),
                    "reason": str(exc),
                },
            )
        content = {"error": exc.message, "code": exc.code, "trace_id": trace_id}
        if exc.details is not None:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)
