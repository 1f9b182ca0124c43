"""Send signed sample onramp webhooks to a running server.

Covers both payload shapes the provider emits (Apple Pay guest checkout and
hosted widget) plus a failed transaction.

Usage:
    python scripts/send_test_webhook.py [BASE_URL] [--secret SECRET] [--legacy]

The secret defaults to ONRAMP_WEBHOOK_SECRET. Without one the requests are
sent unsigned, which only works against a server running without a secret.
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import httpx

from onramp_notify.webhooks.signature import (
    HOOK0_SIGNATURE_HEADER,
    LEGACY_SIGNATURE_HEADER,
    LEGACY_TIMESTAMP_HEADER,
    sign_legacy,
    sign_structured,
)

SAMPLE_EVENTS = {
    "apple_pay_success": {
        "orderId": "123e4567-e89b-12d3-a456-426614174000",
        "eventType": "onramp.transaction.success",
        "paymentTotal": "100.75",
        "paymentSubtotal": "100",
        "paymentCurrency": "USD",
        "paymentMethod": "GUEST_CHECKOUT_APPLE_PAY",
        "purchaseAmount": "100.000000",
        "purchaseCurrency": "USDC",
        "destinationAddress": "0x1234567890abcdef",
        "destinationNetwork": "base",
        "status": "ONRAMP_ORDER_STATUS_COMPLETED",
        "txHash": "0xabcdef1234567890",
        "partnerUserRef": "user-0x1234567890abcdef",
    },
    "widget_success": {
        "transactionId": "1f087a54-ff1f-62e8-9f85-aa77ac0499a5",
        "eventType": "onramp.transaction.success",
        "paymentTotal": {"currency": "USD", "value": "5"},
        "paymentMethod": "CARD",
        "purchaseAmount": {"currency": "USDC", "value": "4.81"},
        "purchaseCurrency": "USDC",
        "purchaseNetwork": "ethereum",
        "walletAddress": "0xe0512E358C347cc2b1A42d057065CE642068b7Ba",
        "status": "ONRAMP_TRANSACTION_STATUS_COMPLETED",
        "partnerUserRef": "user-0xe0512E358C347cc2b1A42d057065CE642068b7Ba",
    },
    "widget_failed": {
        "transactionId": "1f087a54-ff1f-62e8-9f85-aa77ac0499a6",
        "eventType": "onramp.transaction.failed",
        "paymentAmount": {"currency": "USD", "value": "5"},
        "failureReason": "Card declined",
        "partnerUserRef": "user-0xe0512E358C347cc2b1A42d057065CE642068b7Ba",
    },
}


def signed_headers(body: bytes, secret: str, legacy: bool) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if not secret:
        return headers
    timestamp = int(time.time())
    if legacy:
        headers[LEGACY_SIGNATURE_HEADER] = sign_legacy(secret, timestamp, body)
        headers[LEGACY_TIMESTAMP_HEADER] = str(timestamp)
    else:
        headers[HOOK0_SIGNATURE_HEADER] = sign_structured(
            secret, timestamp, body, headers, ["content-type"]
        )
    return headers


def main() -> None:
    parser = argparse.ArgumentParser(description="Send sample onramp webhooks")
    parser.add_argument("base_url", nargs="?", default="http://localhost:3001")
    parser.add_argument("--secret", default=os.environ.get("ONRAMP_WEBHOOK_SECRET", ""))
    parser.add_argument("--legacy", action="store_true", help="Use the two-header legacy signature")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=10.0) as client:
        for name, event in SAMPLE_EVENTS.items():
            body = json.dumps(event).encode("utf-8")
            resp = client.post(
                "/webhooks/onramp",
                content=body,
                headers=signed_headers(body, args.secret, args.legacy),
            )
            print(f"{name}: {resp.status_code} {resp.text}")


if __name__ == "__main__":
    main()
