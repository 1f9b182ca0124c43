"""Pending notification queue for clients that poll instead of receiving pushes.

Each user's queue keeps only the newest ``max_per_user`` entries. Redis queues
also expire ``ttl_seconds`` after the last write.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import deque

from onramp_notify.models.push import PendingNotification

logger = logging.getLogger(__name__)

KEY_PREFIX = "pending-notifications:"
DEFAULT_MAX_PER_USER = 50
DEFAULT_TTL_SECONDS = 7 * 24 * 3600


class PendingNotificationStore(ABC):
    backend: str = "abstract"

    @abstractmethod
    async def push(self, notification: PendingNotification) -> None:
        """Append a notification to the user's queue, dropping the oldest past the cap."""

    @abstractmethod
    async def drain(self, user_id: str) -> list[PendingNotification]:
        """Return and clear every queued notification for the user."""


class InMemoryPendingStore(PendingNotificationStore):
    backend = "memory"

    def __init__(self, max_per_user: int = DEFAULT_MAX_PER_USER) -> None:
        self.max_per_user = max_per_user
        self._queues: dict[str, deque[PendingNotification]] = {}

    async def push(self, notification: PendingNotification) -> None:
        queue = self._queues.setdefault(notification.user_id, deque(maxlen=self.max_per_user))
        queue.append(notification)

    async def drain(self, user_id: str) -> list[PendingNotification]:
        return list(self._queues.pop(user_id, ()))


class RedisPendingStore(PendingNotificationStore):
    """One Redis list per user; draining reads and deletes in a single transaction."""

    backend = "redis"

    def __init__(
        self,
        redis,
        max_per_user: int = DEFAULT_MAX_PER_USER,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.redis = redis
        self.max_per_user = max_per_user
        self.ttl_seconds = ttl_seconds

    async def push(self, notification: PendingNotification) -> None:
        key = f"{KEY_PREFIX}{notification.user_id}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.rpush(key, notification.model_dump_json())
            pipe.ltrim(key, -self.max_per_user, -1)
            pipe.expire(key, self.ttl_seconds)
            await pipe.execute()

    async def drain(self, user_id: str) -> list[PendingNotification]:
        key = f"{KEY_PREFIX}{user_id}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.lrange(key, 0, -1)
            pipe.delete(key)
            raw_items, _ = await pipe.execute()

        notifications = []
        for raw in raw_items:
            try:
                notifications.append(PendingNotification.model_validate(json.loads(raw)))
            except ValueError as exc:
                logger.error("Dropping corrupt pending notification for %s: %s", user_id, exc)
        return notifications


def build_pending_store(
    redis=None,
    max_per_user: int = DEFAULT_MAX_PER_USER,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
) -> PendingNotificationStore:
    if redis is None:
        return InMemoryPendingStore(max_per_user=max_per_user)
    return RedisPendingStore(redis, max_per_user=max_per_user, ttl_seconds=ttl_seconds)
