"""Normalize onramp webhook payloads into a TransactionOutcome.

The provider emits two payload shapes depending on the payment method:

Apple Pay guest checkout::

    {"orderId": "...", "purchaseAmount": "100.000000", "purchaseCurrency": "USDC",
     "destinationNetwork": "base", "destinationAddress": "0x..."}

Hosted widget::

    {"transactionId": "...", "purchaseAmount": {"value": "4.81", "currency": "USDC"},
     "purchaseCurrency": "USDC", "purchaseNetwork": "ethereum", "walletAddress": "0x..."}

Each field below is resolved from an explicit, ordered list of accessors.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from onramp_notify.models.enums import OutcomeType
from onramp_notify.models.transaction import TransactionOutcome

logger = logging.getLogger(__name__)

Accessor = Callable[[dict], Any]

EVENT_TYPE_FIELDS: tuple[str, ...] = ("eventType", "event")

TRANSACTION_ID_ACCESSORS: tuple[Accessor, ...] = (
    lambda p: p.get("transactionId"),
    lambda p: p.get("orderId"),
    lambda p: _nested(p, "data", "transaction", "id"),
)

# Success events: what the user received
SUCCESS_NETWORK_FIELDS: tuple[str, ...] = ("destinationNetwork", "purchaseNetwork")
SUCCESS_ADDRESS_FIELDS: tuple[str, ...] = ("destinationAddress", "walletAddress")

_OUTCOME_BY_SUFFIX: dict[str, OutcomeType] = {
    "created": OutcomeType.CREATED,
    "updated": OutcomeType.UPDATED,
    "success": OutcomeType.SUCCESS,
    "completed": OutcomeType.SUCCESS,
    "failed": OutcomeType.FAILED,
}


def _nested(payload: dict, *path: str) -> Any:
    current: Any = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text or None


def _first_present(payload: dict, accessors: tuple[Accessor, ...]) -> str | None:
    for accessor in accessors:
        value = _as_text(accessor(payload))
        if value:
            return value
    return None


def _first_field(payload: dict, fields: tuple[str, ...]) -> str | None:
    return _first_present(payload, tuple((lambda p, f=f: p.get(f)) for f in fields))


def _money(payload: dict, amount_field: str, currency_field: str) -> tuple[str | None, str | None]:
    """Read an amount that is either a bare value or ``{"value", "currency"}``.

    The currency comes from the object when it carries one, otherwise from the
    separate top-level ``currency_field``.
    """
    raw = payload.get(amount_field)
    if isinstance(raw, dict):
        amount = _as_text(raw.get("value"))
        currency = _as_text(raw.get("currency")) or _as_text(payload.get(currency_field))
    else:
        amount = _as_text(raw)
        currency = _as_text(payload.get(currency_field))
    return amount, currency


def classify_event(event_type: str | None) -> OutcomeType:
    """Map ``[prefix.]transaction.<suffix>`` onto an OutcomeType."""
    if not event_type:
        return OutcomeType.UNKNOWN
    parts = event_type.split(".")
    if len(parts) < 2 or parts[-2] != "transaction":
        return OutcomeType.UNKNOWN
    return _OUTCOME_BY_SUFFIX.get(parts[-1], OutcomeType.UNKNOWN)


def parse_envelope(raw_body: bytes) -> dict:
    """Decode the raw webhook body; malformed input yields an empty payload."""
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Webhook body is not valid JSON: %s", exc)
        return {}
    if not isinstance(payload, dict):
        logger.warning("Webhook body is not a JSON object (got %s)", type(payload).__name__)
        return {}
    return payload


def normalize(payload: dict) -> TransactionOutcome:
    """Extract the canonical transaction outcome from a decoded webhook payload."""
    event_type = _first_field(payload, EVENT_TYPE_FIELDS)
    outcome = classify_event(event_type)

    fields: dict[str, Any] = {
        "event_type": event_type,
        "outcome": outcome,
        "transaction_id": _first_present(payload, TRANSACTION_ID_ACCESSORS),
        "partner_user_ref": _as_text(payload.get("partnerUserRef")),
    }

    if outcome == OutcomeType.SUCCESS:
        amount, currency = _money(payload, "purchaseAmount", "purchaseCurrency")
        fields.update(
            amount=amount,
            currency=currency,
            network=_first_field(payload, SUCCESS_NETWORK_FIELDS),
            destination_address=_first_field(payload, SUCCESS_ADDRESS_FIELDS),
        )
    elif outcome == OutcomeType.FAILED:
        # What the user paid, not what they would have received
        amount, currency = _money(payload, "paymentAmount", "paymentCurrency")
        fields.update(
            amount=amount,
            currency=currency,
            failure_reason=_as_text(payload.get("failureReason")),
        )
    elif outcome == OutcomeType.UNKNOWN:
        logger.info("Ignoring unknown webhook event type: %s", event_type)

    return TransactionOutcome(**fields)
