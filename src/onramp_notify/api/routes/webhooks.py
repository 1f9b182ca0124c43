"""Onramp transaction webhook receiver.

The payment provider calls ``POST /webhooks/onramp`` for transaction
lifecycle events. Only signature failures produce a non-200 response; every
other outcome is acknowledged so local bugs never trigger provider retries.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from onramp_notify.api.middleware.rate_limit import limiter, webhook_rate_limit
from onramp_notify.config import settings
from onramp_notify.dependencies import ProcessorDep, TraceId
from onramp_notify.errors.exceptions import WebhookSignatureError
from onramp_notify.logging_config import bind_request_context
from onramp_notify.webhooks.normalizer import parse_envelope
from onramp_notify.webhooks.signature import SignatureCheck, verify_request

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])


@router.post("/webhooks/onramp")
@limiter.limit(webhook_rate_limit)
async def receive_onramp_webhook(request: Request, processor: ProcessorDep, trace_id: TraceId) -> JSONResponse:
    # Signatures cover the exact bytes received, so read them before any parsing
    raw_body = await request.body()

    check = verify_request(
        request.headers,
        raw_body,
        settings.webhook_secret,
        settings.webhook_max_age_seconds,
    )
    if check == SignatureCheck.MISSING:
        raise WebhookSignatureError("Missing signature headers")
    if check == SignatureCheck.INVALID:
        raise WebhookSignatureError("Invalid signature")

    try:
        payload = parse_envelope(raw_body)
        bind_request_context(
            trace_id,
            event_type=payload.get("eventType") or payload.get("event"),
            partner_user_ref=payload.get("partnerUserRef"),
        )
        await processor.process(payload)
    except Exception:
        logger.exception("Error processing onramp webhook")
        return JSONResponse(status_code=200, content={"received": True, "error": "Processing error"})

    return JSONResponse(status_code=200, content={"received": True})
