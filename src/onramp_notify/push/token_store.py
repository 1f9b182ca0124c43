"""Push token storage keyed by partner user reference.

Redis backs the store when a connection URL is configured; otherwise tokens
live in process memory and are lost on restart. Both expose the same async
interface so the dispatcher never cares which one it got.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from onramp_notify.models.push import PushTokenRecord

logger = logging.getLogger(__name__)

KEY_PREFIX = "push-token:"


class TokenStore(ABC):
    """Latest push token per user reference, last write wins."""

    backend: str = "abstract"

    @abstractmethod
    async def get(self, partner_user_ref: str) -> PushTokenRecord | None:
        """Return the registered token record, or None."""

    @abstractmethod
    async def set(self, partner_user_ref: str, record: PushTokenRecord) -> None:
        """Store (or overwrite) the record for a user reference."""

    async def close(self) -> None:
        return None


class InMemoryTokenStore(TokenStore):
    backend = "memory"

    def __init__(self) -> None:
        self._records: dict[str, PushTokenRecord] = {}

    async def get(self, partner_user_ref: str) -> PushTokenRecord | None:
        return self._records.get(partner_user_ref)

    async def set(self, partner_user_ref: str, record: PushTokenRecord) -> None:
        self._records[partner_user_ref] = record


class RedisTokenStore(TokenStore):
    """Token records stored as JSON strings under ``push-token:<ref>``."""

    backend = "redis"

    def __init__(self, redis) -> None:
        self.redis = redis

    async def get(self, partner_user_ref: str) -> PushTokenRecord | None:
        raw = await self.redis.get(f"{KEY_PREFIX}{partner_user_ref}")
        if raw is None:
            return None
        try:
            return PushTokenRecord.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Corrupt push token record for %s: %s", partner_user_ref, exc)
            return None

    async def set(self, partner_user_ref: str, record: PushTokenRecord) -> None:
        await self.redis.set(f"{KEY_PREFIX}{partner_user_ref}", record.model_dump_json())

    async def close(self) -> None:
        await self.redis.aclose()


def build_token_store(redis_url: str | None) -> TokenStore:
    """Pick the backing store from configuration."""
    if not redis_url:
        logger.info("No Redis URL configured, using in-memory push token store")
        return InMemoryTokenStore()

    import redis.asyncio as aioredis

    logger.info("Using Redis-backed push token store")
    return RedisTokenStore(aioredis.from_url(redis_url, decode_responses=True))
