"""Push token registration and notification polling for the mobile client."""

import logging

from fastapi import APIRouter, Query

from onramp_notify.dependencies import CurrentUser, PendingStoreDep, TokenStoreDep
from onramp_notify.errors.exceptions import AuthorizationError, ValidationError
from onramp_notify.models.push import PushTokenRecord, PushTokenRegistration

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Push"])


@router.post("/push-tokens")
async def register_push_token(body: PushTokenRegistration, user: CurrentUser, store: TokenStoreDep) -> dict:
    """Store the caller's device token; a later registration replaces it."""
    if not body.user_id or not body.push_token:
        raise ValidationError("userId and pushToken are required")

    if body.user_id != user["sub"]:
        logger.warning("Rejected push token registration for another user")
        raise AuthorizationError("Forbidden: Cannot register push token for another user")

    record = PushTokenRecord(
        token=body.push_token,
        platform=body.platform,
        token_type=body.token_type,
    )
    await store.set(body.user_id, record)
    logger.info(
        "Push token registered",
        extra={"push_token": record.token, "platform": str(record.platform), "token_type": str(record.token_type)},
    )
    return {"success": True}


@router.get("/notifications/poll")
async def poll_notifications(
    user: CurrentUser,
    pending: PendingStoreDep,
    user_id: str | None = Query(None, alias="userId"),
) -> dict:
    """Return and clear queued notifications (for simulators without push)."""
    if not user_id:
        raise ValidationError("userId is required")

    if user_id != user["sub"]:
        logger.warning("Rejected notification poll for another user")
        raise AuthorizationError("Forbidden: Cannot poll notifications for another user")

    notifications = await pending.drain(user_id)
    if notifications:
        logger.info("Delivered %d pending notification(s) via polling", len(notifications))

    return {
        "notifications": [
            {
                "id": n.id,
                "userId": n.user_id,
                "title": n.title,
                "body": n.body,
                "data": n.data,
                "createdAt": n.created_at.isoformat(),
            }
            for n in notifications
        ]
    }
