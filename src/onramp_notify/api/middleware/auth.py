"""JWT Bearer authentication middleware for client-facing routes."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from onramp_notify.config import settings

logger = logging.getLogger(__name__)

_ANONYMOUS = {"sub": "anonymous"}

# Paths that never carry client credentials (webhooks authenticate by signature)
_PUBLIC_PREFIXES = ("/health", "/webhooks", "/docs", "/redoc", "/openapi.json")


def _decode_jwt(token: str) -> dict:
    from jose import JWTError, jwt

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate a Bearer token and attach the caller to ``request.state.user``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path.startswith(_PUBLIC_PREFIXES):
            request.state.user = dict(_ANONYMOUS)
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            request.state.user = self._validate_jwt(auth_header[7:])
        else:
            # Routes that need a user enforce it through dependencies
            request.state.user = dict(_ANONYMOUS)
        return await call_next(request)

    @staticmethod
    def _validate_jwt(token: str) -> dict:
        try:
            payload = _decode_jwt(token)
        except ValueError:
            return {**_ANONYMOUS, "_auth_error": "Invalid or expired access token"}

        if payload.get("type") == "refresh":
            return {**_ANONYMOUS, "_auth_error": "not_access_token"}

        return {"sub": payload.get("sub", ""), "email": payload.get("email", "")}
