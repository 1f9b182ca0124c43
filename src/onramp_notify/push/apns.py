"""Direct Apple Push Notification service (APNs) client.

Uses token-based provider authentication: an ES256 JWT signed with the
``.p8`` key, sent over HTTP/2. Production and sandbox are separate hosts;
a device token only works against the environment it was issued for.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx
from jose import jwt

from onramp_notify.models.push import PushNotification

logger = logging.getLogger(__name__)

PRODUCTION_HOST = "https://api.push.apple.com"
SANDBOX_HOST = "https://api.sandbox.push.apple.com"

# APNs rejects provider tokens older than an hour
_TOKEN_REFRESH_SECONDS = 50 * 60

# Rejections meaning the token belongs to the other APNs environment
WRONG_ENVIRONMENT_REASONS = frozenset({"BadDeviceToken", "BadEnvironmentKeyInToken"})


@dataclass(frozen=True)
class ApnsResult:
    status_code: int
    reason: str | None = None
    apns_id: str | None = None
    sandbox: bool = False

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def wrong_environment(self) -> bool:
        return self.reason in WRONG_ENVIRONMENT_REASONS


class ApnsClient:
    """Sends alert notifications to APNs for one app bundle."""

    def __init__(
        self,
        key_id: str,
        team_id: str,
        private_key: str,
        bundle_id: str,
        http_client: httpx.AsyncClient,
    ) -> None:
        self.key_id = key_id
        self.team_id = team_id
        self.private_key = private_key
        self.bundle_id = bundle_id
        self.http_client = http_client
        self._provider_token: str | None = None
        self._provider_token_issued_at = 0.0

    def provider_token(self) -> str:
        """Return a cached provider JWT, re-signing it when it gets stale."""
        now = time.time()
        if self._provider_token is None or now - self._provider_token_issued_at > _TOKEN_REFRESH_SECONDS:
            self._provider_token = jwt.encode(
                {"iss": self.team_id, "iat": int(now)},
                self.private_key,
                algorithm="ES256",
                headers={"kid": self.key_id},
            )
            self._provider_token_issued_at = now
        return self._provider_token

    @staticmethod
    def build_payload(notification: PushNotification) -> dict:
        return {
            "aps": {
                "alert": {"title": notification.title, "body": notification.body},
                "sound": "default",
            },
            "data": notification.data,
        }

    async def send(self, device_token: str, notification: PushNotification, sandbox: bool = False) -> ApnsResult:
        """Submit one notification. Network errors propagate to the caller."""
        host = SANDBOX_HOST if sandbox else PRODUCTION_HOST
        headers = {
            "authorization": f"bearer {self.provider_token()}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10",
        }
        response = await self.http_client.post(
            f"{host}/3/device/{device_token}",
            json=self.build_payload(notification),
            headers=headers,
        )

        reason = None
        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = None
            reason = body.get("reason") if isinstance(body, dict) else (response.text or None)
        return ApnsResult(
            status_code=response.status_code,
            reason=reason,
            apns_id=response.headers.get("apns-id"),
            sandbox=sandbox,
        )
