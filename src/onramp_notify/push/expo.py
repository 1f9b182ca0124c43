"""Expo push relay client."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from onramp_notify.models.push import PushNotification

logger = logging.getLogger(__name__)

DEFAULT_PUSH_URL = "https://exp.host/--/api/v2/push/send"


@dataclass(frozen=True)
class ExpoResult:
    status_code: int
    ticket_status: str | None = None
    message: str | None = None
    body: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and self.ticket_status != "error"


class ExpoPushClient:
    """Posts messages to the Expo push API using the device token as address."""

    def __init__(self, http_client: httpx.AsyncClient, push_url: str = DEFAULT_PUSH_URL) -> None:
        self.http_client = http_client
        self.push_url = push_url

    @staticmethod
    def build_message(device_token: str, notification: PushNotification) -> dict:
        return {
            "to": device_token,
            "sound": "default",
            "title": notification.title,
            "body": notification.body,
            "data": notification.data,
        }

    async def send(self, device_token: str, notification: PushNotification) -> ExpoResult:
        """Submit one message. Network errors propagate to the caller."""
        response = await self.http_client.post(
            self.push_url,
            json=self.build_message(device_token, notification),
            headers={"Accept": "application/json"},
        )
        if not 200 <= response.status_code < 300:
            logger.warning("Expo relay returned HTTP %d: %s", response.status_code, response.text[:200])
            return ExpoResult(status_code=response.status_code, body=response.text)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Expo relay returned a non-JSON body")
            return ExpoResult(status_code=response.status_code, body=response.text)
        ticket = (payload.get("data") if isinstance(payload, dict) else None) or {}

        # A single message yields a single ticket object
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if not isinstance(ticket, dict):
            ticket = {}
        return ExpoResult(
            status_code=response.status_code,
            ticket_status=ticket.get("status"),
            message=ticket.get("message"),
            body=response.text,
        )
