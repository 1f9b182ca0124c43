"""Webhook signature verification (HMAC-SHA256 with a replay window).

Two schemes are accepted from the payment provider:

* Structured: ``X-Hook0-Signature: t=<unix>,h=<name1:name2>,v1=<hex>``. The
  signed payload is the timestamp, then the raw value of each header listed in
  ``h`` (in order), then the raw request body.
* Legacy: ``X-Coinbase-Signature`` carries the hex digest and
  ``X-Coinbase-Timestamp`` the unix timestamp. The signed payload is the
  timestamp followed by the raw body.

Both schemes share the same freshness window: an event older than
``max_age_seconds`` or more than ``CLOCK_SKEW_TOLERANCE_SECONDS`` in the future
is rejected.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

HOOK0_SIGNATURE_HEADER = "X-Hook0-Signature"
LEGACY_SIGNATURE_HEADER = "X-Coinbase-Signature"
LEGACY_TIMESTAMP_HEADER = "X-Coinbase-Timestamp"

DEFAULT_MAX_AGE_SECONDS = 300
CLOCK_SKEW_TOLERANCE_SECONDS = 60


class SignatureCheck(StrEnum):
    VERIFIED = "verified"
    SKIPPED = "skipped"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass(frozen=True)
class SignatureComponents:
    """Parsed form of a structured signature header."""

    timestamp: str
    signature: str
    header_names: list[str] = field(default_factory=list)


def parse_signature_header(signature_header: str) -> SignatureComponents | None:
    """Parse ``t=...,h=...,v1=...`` into its components.

    Returns None when the timestamp or the ``v1`` digest is missing.
    """
    timestamp = ""
    signature = ""
    header_names: list[str] = []

    for part in signature_header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "h":
            header_names = [name for name in value.split(":") if name] if value else []
        elif key == "v1":
            signature = value

    if not timestamp or not signature:
        return None
    return SignatureComponents(timestamp=timestamp, signature=signature, header_names=header_names)


def _header_value(headers: Mapping[str, Any], name: str) -> str | None:
    """Case-insensitive header lookup; the first value wins when a header repeats."""
    getlist = getattr(headers, "getlist", None)
    if getlist is not None:
        values = getlist(name)
        return values[0] if values else None

    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() != wanted:
            continue
        if isinstance(value, (list, tuple)):
            return value[0] if value else None
        return value
    return None


def construct_signed_payload(
    timestamp: str,
    header_names: list[str],
    headers: Mapping[str, Any],
    raw_body: bytes,
) -> bytes:
    """Build ``timestamp + header values (in listed order) + raw body``.

    Headers named in the signature but absent from the request contribute nothing.
    """
    parts = [timestamp.encode("utf-8")]
    for name in header_names:
        value = _header_value(headers, name)
        if value:
            parts.append(value.encode("utf-8"))
    parts.append(raw_body)
    return b"".join(parts)


def check_timestamp_freshness(
    timestamp: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> bool:
    """Return True when ``-CLOCK_SKEW_TOLERANCE_SECONDS <= age <= max_age_seconds``."""
    if not timestamp or not (timestamp.isascii() and timestamp.isdigit()):
        logger.warning("Webhook timestamp is not a unix timestamp: %r", timestamp)
        return False

    current = int(now if now is not None else time.time())
    age = current - int(timestamp)

    if age > max_age_seconds:
        logger.warning("Webhook too old (age=%ds, max_age=%ds)", age, max_age_seconds)
        return False
    if age < -CLOCK_SKEW_TOLERANCE_SECONDS:
        logger.warning("Webhook timestamp is in the future (age=%ds)", age)
        return False
    return True


def _compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _digests_match(expected_hex: str, received_hex: str) -> bool:
    """Constant-time comparison of two hex digests; malformed hex never matches."""
    try:
        received = bytes.fromhex(received_hex)
    except ValueError:
        logger.warning("Webhook signature is not valid hex")
        return False
    return hmac.compare_digest(bytes.fromhex(expected_hex), received)


def verify_webhook_signature(
    signature_header: str,
    headers: Mapping[str, Any],
    raw_body: bytes,
    secret: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> bool:
    """Verify a structured (``X-Hook0-Signature``) webhook signature."""
    components = parse_signature_header(signature_header)
    if components is None:
        logger.warning("Invalid signature header format")
        return False

    if not check_timestamp_freshness(components.timestamp, max_age_seconds, now):
        return False

    payload = construct_signed_payload(
        components.timestamp, components.header_names, headers, raw_body
    )
    is_valid = _digests_match(_compute_signature(payload, secret), components.signature)
    if not is_valid:
        logger.warning(
            "Webhook signature mismatch (signed_headers=%s)",
            ":".join(components.header_names),
        )
    return is_valid


def verify_legacy_signature(
    signature: str,
    timestamp: str,
    raw_body: bytes,
    secret: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> bool:
    """Verify the older two-header signature: HMAC(timestamp + body)."""
    if not check_timestamp_freshness(timestamp, max_age_seconds, now):
        return False

    payload = timestamp.encode("utf-8") + raw_body
    is_valid = _digests_match(_compute_signature(payload, secret), signature)
    if not is_valid:
        logger.warning("Legacy webhook signature mismatch")
    return is_valid


def verify_request(
    headers: Mapping[str, Any],
    raw_body: bytes,
    secret: str,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: float | None = None,
) -> SignatureCheck:
    """Pick the signature scheme for a request and verify it.

    The structured header is used exclusively when present; the legacy pair is
    only consulted when it is absent. Without a secret nothing is verified.
    """
    if not secret:
        logger.warning("Webhook secret not configured, skipping signature verification (INSECURE)")
        return SignatureCheck.SKIPPED

    structured = _header_value(headers, HOOK0_SIGNATURE_HEADER)
    if structured:
        ok = verify_webhook_signature(structured, headers, raw_body, secret, max_age_seconds, now)
        return SignatureCheck.VERIFIED if ok else SignatureCheck.INVALID

    legacy_signature = _header_value(headers, LEGACY_SIGNATURE_HEADER)
    legacy_timestamp = _header_value(headers, LEGACY_TIMESTAMP_HEADER)
    if legacy_signature and legacy_timestamp:
        ok = verify_legacy_signature(
            legacy_signature, legacy_timestamp, raw_body, secret, max_age_seconds, now
        )
        return SignatureCheck.VERIFIED if ok else SignatureCheck.INVALID

    logger.warning("No signature headers found on webhook")
    return SignatureCheck.MISSING


def sign_structured(
    secret: str,
    timestamp: int | str,
    raw_body: bytes,
    headers: Mapping[str, Any] | None = None,
    header_names: list[str] | None = None,
) -> str:
    """Produce an ``X-Hook0-Signature`` value (used by the local webhook sender and tests)."""
    names = header_names or []
    ts = str(timestamp)
    payload = construct_signed_payload(ts, names, headers or {}, raw_body)
    return f"t={ts},h={':'.join(names)},v1={_compute_signature(payload, secret)}"


def sign_legacy(secret: str, timestamp: int | str, raw_body: bytes) -> str:
    """Produce an ``X-Coinbase-Signature`` value for the given timestamp and body."""
    ts = str(timestamp)
    return _compute_signature(ts.encode("utf-8") + raw_body, secret)
