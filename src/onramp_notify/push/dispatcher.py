"""Notification dispatch across the APNs and Expo channels.

``NotificationDispatcher.dispatch`` never raises. Every path ends in a
``Delivered``, ``Skipped`` or ``Failed`` result that is logged by the caller
and asserted on by tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from onramp_notify.models.enums import NotificationType, OutcomeType, Platform, PushChannel, TokenType
from onramp_notify.models.push import PushNotification, PushTokenRecord
from onramp_notify.models.transaction import TransactionOutcome
from onramp_notify.push.apns import ApnsClient
from onramp_notify.push.expo import ExpoPushClient

logger = logging.getLogger(__name__)

SUCCESS_TITLE = "\U0001f389 Crypto Purchase Complete!"  # 🎉
FAILURE_TITLE = "\u274c Transaction Failed"  # ❌
UNKNOWN_FAILURE_REASON = "Unknown error"


@dataclass(frozen=True)
class Delivered:
    channel: PushChannel
    detail: str | None = None


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Failed:
    channel: PushChannel | None
    detail: str


DeliveryResult = Delivered | Skipped | Failed


def build_notification(outcome: TransactionOutcome) -> PushNotification | None:
    """Render title, body and data for a terminal outcome; None otherwise."""
    if outcome.outcome == OutcomeType.SUCCESS:
        title = SUCCESS_TITLE
        body = (
            f"Your {outcome.amount} {outcome.currency} has been delivered "
            f"to your {outcome.network} wallet!"
        )
        notification_type = NotificationType.ONRAMP_COMPLETE
    elif outcome.outcome == OutcomeType.FAILED:
        title = FAILURE_TITLE
        reason = outcome.failure_reason or UNKNOWN_FAILURE_REASON
        body = f"Your purchase failed: {reason}. Please try again."
        notification_type = NotificationType.ONRAMP_FAILED
    else:
        return None

    return PushNotification(
        title=title,
        body=body,
        data={
            "transactionId": outcome.transaction_id,
            "type": str(notification_type),
            "partnerUserRef": outcome.partner_user_ref,
        },
    )


class NotificationDispatcher:
    """Chooses a push channel for a token record and delivers one notification."""

    def __init__(self, expo: ExpoPushClient, apns: ApnsClient | None = None) -> None:
        self.expo = expo
        self.apns = apns

    def select_channel(self, record: PushTokenRecord) -> PushChannel:
        if (
            record.token_type == TokenType.NATIVE
            and self.apns is not None
            and record.platform == Platform.IOS
        ):
            return PushChannel.APNS
        return PushChannel.EXPO

    async def dispatch(self, outcome: TransactionOutcome, record: PushTokenRecord | None) -> DeliveryResult:
        notification = build_notification(outcome)
        if notification is None:
            return Skipped(f"outcome '{outcome.outcome}' does not notify")

        if record is None:
            logger.info(
                "No push token registered for %s, skipping push for %s",
                outcome.partner_user_ref,
                outcome.transaction_id,
            )
            return Skipped("no registered push token")

        channel = self.select_channel(record)
        try:
            if channel == PushChannel.APNS:
                return await self._send_apns(record, notification)
            return await self._send_expo(record, notification)
        except Exception as exc:
            logger.error(
                "Push delivery via %s raised for %s: %s",
                channel,
                outcome.transaction_id,
                exc,
            )
            return Failed(channel, f"{type(exc).__name__}: {exc}")

    async def _send_apns(self, record: PushTokenRecord, notification: PushNotification) -> DeliveryResult:
        result = await self.apns.send(record.token, notification, sandbox=False)
        if not result.ok and result.wrong_environment:
            # Development builds register sandbox tokens; try the other environment once
            logger.info("APNs production rejected token (%s), retrying against sandbox", result.reason)
            result = await self.apns.send(record.token, notification, sandbox=True)

        if result.ok:
            environment = "sandbox" if result.sandbox else "production"
            logger.info("APNs notification delivered (%s, apns_id=%s)", environment, result.apns_id)
            return Delivered(PushChannel.APNS, environment)

        detail = f"status={result.status_code} reason={result.reason}"
        logger.error("APNs delivery failed: %s", detail)
        return Failed(PushChannel.APNS, detail)

    async def _send_expo(self, record: PushTokenRecord, notification: PushNotification) -> DeliveryResult:
        result = await self.expo.send(record.token, notification)
        if result.ok:
            logger.info("Expo push notification sent")
            return Delivered(PushChannel.EXPO)

        detail = f"status={result.status_code} message={result.message} body={result.body}"
        logger.error("Expo push delivery failed: %s", detail)
        return Failed(PushChannel.EXPO, detail)
