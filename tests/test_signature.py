"""Tests for webhook signature verification."""

import hashlib
import hmac

import pytest

from onramp_notify.webhooks.signature import (
    CLOCK_SKEW_TOLERANCE_SECONDS,
    SignatureCheck,
    check_timestamp_freshness,
    construct_signed_payload,
    parse_signature_header,
    sign_legacy,
    sign_structured,
    verify_legacy_signature,
    verify_request,
    verify_webhook_signature,
)

SECRET = "whsec_unit"
NOW = 1_760_000_000
BODY = b'{"eventType":"onramp.transaction.success","orderId":"ord_1"}'


def _hmac(payload: bytes) -> str:
    return hmac.new(SECRET.encode(), payload, hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------


def test_parse_signature_header():
    components = parse_signature_header("t=1700000000,h=content-type:x-request-id,v1=abcd")
    assert components.timestamp == "1700000000"
    assert components.header_names == ["content-type", "x-request-id"]
    assert components.signature == "abcd"


def test_parse_signature_header_without_header_list():
    components = parse_signature_header("t=1700000000,v1=abcd")
    assert components.header_names == []


@pytest.mark.parametrize(
    "value",
    ["", "garbage", "h=a:b,v1=abcd", "t=1700000000,h=a", "t=,v1=abcd", "t=1700000000,v1="],
)
def test_parse_signature_header_rejects_incomplete(value):
    assert parse_signature_header(value) is None


def test_construct_signed_payload_orders_headers_and_uses_first_value():
    headers = {
        "Content-Type": "application/json",
        "X-Request-Id": ["req-1", "req-2"],
    }
    payload = construct_signed_payload("1700000000", ["x-request-id", "content-type", "x-absent"], headers, b"{}")
    assert payload == b"1700000000req-1application/json{}"


# ---------------------------------------------------------------------------
# Structured scheme
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("age", [0, 1, 299, 300, -1, -CLOCK_SKEW_TOLERANCE_SECONDS])
def test_structured_accepts_ages_inside_window(age):
    header = sign_structured(SECRET, NOW - age, BODY)
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is True


@pytest.mark.parametrize("age", [301, 3600, -CLOCK_SKEW_TOLERANCE_SECONDS - 1, -3600])
def test_structured_rejects_ages_outside_window(age):
    header = sign_structured(SECRET, NOW - age, BODY)
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is False


def test_structured_respects_custom_max_age():
    header = sign_structured(SECRET, NOW - 30, BODY)
    assert verify_webhook_signature(header, {}, BODY, SECRET, max_age_seconds=10, now=NOW) is False
    assert verify_webhook_signature(header, {}, BODY, SECRET, max_age_seconds=60, now=NOW) is True


def test_structured_includes_listed_headers():
    headers = {"content-type": "application/json", "x-hook0-id": "evt_1"}
    expected = _hmac(f"{NOW}application/jsonevt_1".encode() + BODY)
    header = f"t={NOW},h=content-type:x-hook0-id,v1={expected}"
    assert verify_webhook_signature(header, headers, BODY, SECRET, now=NOW) is True

    # Same digest, different header value
    tampered_headers = {**headers, "x-hook0-id": "evt_2"}
    assert verify_webhook_signature(header, tampered_headers, BODY, SECRET, now=NOW) is False


def test_structured_header_order_matters():
    headers = {"a": "1", "b": "2"}
    header = sign_structured(SECRET, NOW, BODY, headers, ["a", "b"])
    swapped = header.replace("h=a:b", "h=b:a")
    assert verify_webhook_signature(header, headers, BODY, SECRET, now=NOW) is True
    assert verify_webhook_signature(swapped, headers, BODY, SECRET, now=NOW) is False


def test_flipping_any_body_byte_fails_verification():
    header = sign_structured(SECRET, NOW, BODY)
    for i in range(len(BODY)):
        tampered = bytearray(BODY)
        tampered[i] ^= 0x01
        assert verify_webhook_signature(header, {}, bytes(tampered), SECRET, now=NOW) is False


def test_structured_rejects_wrong_secret():
    header = sign_structured("another-secret", NOW, BODY)
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is False


@pytest.mark.parametrize("signature", ["not-hex", "abc", "00" * 16, "zz" * 32])
def test_structured_rejects_malformed_digest(signature):
    header = f"t={NOW},h=,v1={signature}"
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is False


def test_structured_rejects_non_numeric_timestamp():
    header = f"t=yesterday,h=,v1={_hmac(b'yesterday' + BODY)}"
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is False


@pytest.mark.parametrize("timestamp", ["²", "¹²³", "١٢", "17600000²"])
def test_non_ascii_digit_timestamps_are_rejected(timestamp):
    assert check_timestamp_freshness(timestamp, now=NOW) is False
    header = f"t={timestamp},h=,v1={'00' * 32}"
    assert verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) is False
    assert verify_legacy_signature("00" * 32, timestamp, BODY, SECRET, now=NOW) is False


def test_verification_is_deterministic():
    header = sign_structured(SECRET, NOW - 5, BODY)
    results = {verify_webhook_signature(header, {}, BODY, SECRET, now=NOW) for _ in range(5)}
    assert results == {True}


# ---------------------------------------------------------------------------
# Legacy scheme
# ---------------------------------------------------------------------------


def test_legacy_signature_is_hmac_of_timestamp_and_body():
    assert sign_legacy(SECRET, NOW, BODY) == _hmac(str(NOW).encode() + BODY)


def test_legacy_accepts_valid_signature():
    signature = sign_legacy(SECRET, NOW - 2, BODY)
    assert verify_legacy_signature(signature, str(NOW - 2), BODY, SECRET, now=NOW) is True


def test_legacy_rejects_tampered_body():
    signature = sign_legacy(SECRET, NOW, BODY)
    assert verify_legacy_signature(signature, str(NOW), BODY + b" ", SECRET, now=NOW) is False


@pytest.mark.parametrize("age", [0, 300, -60, 301, -61, 400])
def test_legacy_and_structured_share_freshness_window(age):
    ts = NOW - age
    structured = verify_webhook_signature(sign_structured(SECRET, ts, BODY), {}, BODY, SECRET, now=NOW)
    legacy = verify_legacy_signature(sign_legacy(SECRET, ts, BODY), str(ts), BODY, SECRET, now=NOW)
    assert structured == legacy == check_timestamp_freshness(str(ts), now=NOW)


# ---------------------------------------------------------------------------
# Scheme selection
# ---------------------------------------------------------------------------


def test_verify_request_skips_without_secret():
    assert verify_request({}, BODY, "", now=NOW) == SignatureCheck.SKIPPED


def test_verify_request_missing_headers():
    assert verify_request({"content-type": "application/json"}, BODY, SECRET, now=NOW) == SignatureCheck.MISSING


def test_verify_request_incomplete_legacy_pair_is_missing():
    headers = {"X-Coinbase-Signature": sign_legacy(SECRET, NOW, BODY)}
    assert verify_request(headers, BODY, SECRET, now=NOW) == SignatureCheck.MISSING


def test_verify_request_structured():
    headers = {"X-Hook0-Signature": sign_structured(SECRET, NOW, BODY)}
    assert verify_request(headers, BODY, SECRET, now=NOW) == SignatureCheck.VERIFIED


def test_verify_request_legacy():
    headers = {
        "x-coinbase-signature": sign_legacy(SECRET, NOW, BODY),
        "x-coinbase-timestamp": str(NOW),
    }
    assert verify_request(headers, BODY, SECRET, now=NOW) == SignatureCheck.VERIFIED


def test_structured_header_takes_precedence_over_legacy():
    """A bad structured signature is not rescued by a valid legacy pair."""
    headers = {
        "X-Hook0-Signature": f"t={NOW},h=,v1={'00' * 32}",
        "X-Coinbase-Signature": sign_legacy(SECRET, NOW, BODY),
        "X-Coinbase-Timestamp": str(NOW),
    }
    assert verify_request(headers, BODY, SECRET, now=NOW) == SignatureCheck.INVALID
