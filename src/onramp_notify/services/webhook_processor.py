"""Per-event webhook processing: normalize, queue, look up token, dispatch.

Each event is handled on its own. No per-transaction state is kept, so
duplicate or out-of-order deliveries are each processed independently.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from onramp_notify.models.push import PendingNotification
from onramp_notify.models.transaction import TransactionOutcome
from onramp_notify.push.dispatcher import DeliveryResult, NotificationDispatcher, Skipped, build_notification
from onramp_notify.push.pending import PendingNotificationStore
from onramp_notify.push.token_store import TokenStore
from onramp_notify.webhooks.normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    outcome: TransactionOutcome
    delivery: DeliveryResult
    queued: bool = False


class WebhookProcessor:
    def __init__(
        self,
        token_store: TokenStore,
        dispatcher: NotificationDispatcher,
        pending_store: PendingNotificationStore | None = None,
    ) -> None:
        self.token_store = token_store
        self.dispatcher = dispatcher
        self.pending_store = pending_store

    async def process(self, payload: dict) -> ProcessingResult:
        outcome = normalize(payload)
        logger.info(
            "Webhook event %s (outcome=%s, transaction=%s)",
            outcome.event_type,
            outcome.outcome,
            outcome.transaction_id,
        )

        if not outcome.notifies:
            return ProcessingResult(outcome, Skipped(f"outcome '{outcome.outcome}' does not notify"))

        if not outcome.partner_user_ref:
            logger.info("No partnerUserRef on transaction %s, cannot notify", outcome.transaction_id)
            return ProcessingResult(outcome, Skipped("missing partnerUserRef"))

        queued = await self._queue_for_polling(outcome)
        record = await self.token_store.get(outcome.partner_user_ref)
        delivery = await self.dispatcher.dispatch(outcome, record)
        logger.info("Notification result for %s: %s", outcome.transaction_id, delivery)
        return ProcessingResult(outcome, delivery, queued=queued)

    async def _queue_for_polling(self, outcome: TransactionOutcome) -> bool:
        """Queue the notification for clients that poll (simulators, no push token)."""
        if self.pending_store is None:
            return False
        notification = build_notification(outcome)
        try:
            await self.pending_store.push(
                PendingNotification(
                    id=uuid.uuid4().hex,
                    user_id=outcome.partner_user_ref,
                    title=notification.title,
                    body=notification.body,
                    data=notification.data,
                )
            )
        except Exception:
            # The polling queue is secondary; push delivery still goes ahead
            logger.exception("Failed to queue pending notification for %s", outcome.transaction_id)
            return False
        return True
