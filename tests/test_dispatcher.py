"""Tests for notification content and push channel dispatch."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from onramp_notify.models.enums import OutcomeType, PushChannel, TokenType
from onramp_notify.models.push import PushTokenRecord
from onramp_notify.models.transaction import TransactionOutcome
from onramp_notify.push.apns import ApnsResult
from onramp_notify.push.dispatcher import (
    Delivered,
    Failed,
    NotificationDispatcher,
    Skipped,
    build_notification,
)
from onramp_notify.push.expo import ExpoPushClient


SUCCESS = TransactionOutcome(
    event_type="onramp.transaction.success",
    outcome=OutcomeType.SUCCESS,
    transaction_id="tx_1",
    amount="4.81",
    currency="USDC",
    network="base",
    partner_user_ref="user-42",
)

FAILURE = TransactionOutcome(
    event_type="onramp.transaction.failed",
    outcome=OutcomeType.FAILED,
    transaction_id="tx_2",
    amount="5",
    currency="USD",
    partner_user_ref="user-42",
)

IOS_NATIVE = PushTokenRecord(token="a1b2c3", platform="ios", token_type=TokenType.NATIVE)
IOS_EXPO = PushTokenRecord(token="ExponentPushToken[xyz]", platform="ios", token_type=TokenType.EXPO)
ANDROID_NATIVE = PushTokenRecord(token="fcm-token", platform="android")


def _apns(*results: ApnsResult) -> MagicMock:
    apns = MagicMock()
    apns.send = AsyncMock(side_effect=list(results))
    return apns


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


def test_success_notification_content():
    notification = build_notification(SUCCESS)
    assert "Complete" in notification.title
    assert notification.body == "Your 4.81 USDC has been delivered to your base wallet!"
    assert notification.data == {
        "transactionId": "tx_1",
        "type": "onramp_complete",
        "partnerUserRef": "user-42",
    }


def test_failure_notification_defaults_reason():
    notification = build_notification(FAILURE)
    assert "Failed" in notification.title
    assert notification.body == "Your purchase failed: Unknown error. Please try again."
    assert notification.data["type"] == "onramp_failed"


def test_failure_notification_uses_reason():
    outcome = FAILURE.model_copy(update={"failure_reason": "Card declined"})
    assert build_notification(outcome).body == "Your purchase failed: Card declined. Please try again."


@pytest.mark.parametrize("outcome_type", [OutcomeType.CREATED, OutcomeType.UPDATED, OutcomeType.UNKNOWN])
def test_non_terminal_outcomes_do_not_notify(outcome_type):
    assert build_notification(SUCCESS.model_copy(update={"outcome": outcome_type})) is None


# ---------------------------------------------------------------------------
# Channel selection
# ---------------------------------------------------------------------------


async def test_native_ios_with_apns_uses_direct_channel(relay_http_client):
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=MagicMock())
    assert dispatcher.select_channel(IOS_NATIVE) == PushChannel.APNS


@pytest.mark.parametrize("record", [IOS_EXPO, ANDROID_NATIVE])
async def test_expo_tokens_and_non_ios_use_relay(relay_http_client, record):
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=MagicMock())
    assert dispatcher.select_channel(record) == PushChannel.EXPO


async def test_without_apns_everything_uses_relay(dispatcher):
    assert dispatcher.select_channel(IOS_NATIVE) == PushChannel.EXPO


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def test_no_record_is_skipped(dispatcher, relay):
    result = await dispatcher.dispatch(SUCCESS, None)
    assert isinstance(result, Skipped)
    assert relay.requests == []


async def test_non_terminal_outcome_is_skipped(dispatcher, relay):
    created = SUCCESS.model_copy(update={"outcome": OutcomeType.CREATED})
    result = await dispatcher.dispatch(created, IOS_EXPO)
    assert isinstance(result, Skipped)
    assert relay.requests == []


async def test_relay_delivery(dispatcher, relay):
    result = await dispatcher.dispatch(SUCCESS, IOS_EXPO)
    assert result == Delivered(PushChannel.EXPO)
    assert relay.messages == [
        {
            "to": "ExponentPushToken[xyz]",
            "sound": "default",
            "title": build_notification(SUCCESS).title,
            "body": "Your 4.81 USDC has been delivered to your base wallet!",
            "data": {"transactionId": "tx_1", "type": "onramp_complete", "partnerUserRef": "user-42"},
        }
    ]


async def test_relay_error_ticket_is_failure(dispatcher, relay):
    relay.body = {"data": {"status": "error", "message": "DeviceNotRegistered"}}
    result = await dispatcher.dispatch(SUCCESS, IOS_EXPO)
    assert isinstance(result, Failed)
    assert result.channel == PushChannel.EXPO
    assert "DeviceNotRegistered" in result.detail


async def test_relay_http_500_is_failure(dispatcher, relay):
    relay.status_code = 500
    relay.body = {"errors": [{"message": "boom"}]}
    result = await dispatcher.dispatch(FAILURE, IOS_EXPO)
    assert isinstance(result, Failed)
    assert "status=500" in result.detail


async def test_relay_connection_error_is_failure(dispatcher, relay):
    relay.error = httpx.ConnectError("connection refused")
    result = await dispatcher.dispatch(SUCCESS, IOS_EXPO)
    assert isinstance(result, Failed)
    assert "ConnectError" in result.detail


async def test_apns_production_delivery(relay_http_client, relay):
    apns = _apns(ApnsResult(status_code=200, apns_id="id-1"))
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=apns)

    result = await dispatcher.dispatch(SUCCESS, IOS_NATIVE)
    assert result == Delivered(PushChannel.APNS, "production")
    apns.send.assert_awaited_once()
    assert apns.send.await_args.kwargs["sandbox"] is False
    assert relay.requests == []


async def test_apns_wrong_environment_retries_sandbox_once(relay_http_client):
    apns = _apns(
        ApnsResult(status_code=400, reason="BadDeviceToken"),
        ApnsResult(status_code=200, sandbox=True),
    )
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=apns)

    result = await dispatcher.dispatch(SUCCESS, IOS_NATIVE)
    assert result == Delivered(PushChannel.APNS, "sandbox")
    assert [call.kwargs["sandbox"] for call in apns.send.await_args_list] == [False, True]


async def test_apns_sandbox_retry_failure_gives_up(relay_http_client, relay):
    apns = _apns(
        ApnsResult(status_code=400, reason="BadDeviceToken"),
        ApnsResult(status_code=400, reason="BadDeviceToken", sandbox=True),
    )
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=apns)

    result = await dispatcher.dispatch(SUCCESS, IOS_NATIVE)
    assert isinstance(result, Failed)
    assert apns.send.await_count == 2
    assert relay.requests == []


async def test_apns_other_rejection_is_not_retried(relay_http_client):
    apns = _apns(ApnsResult(status_code=410, reason="Unregistered"))
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=apns)

    result = await dispatcher.dispatch(FAILURE, IOS_NATIVE)
    assert isinstance(result, Failed)
    assert "Unregistered" in result.detail
    assert apns.send.await_count == 1


async def test_apns_exception_is_swallowed(relay_http_client):
    apns = MagicMock()
    apns.send = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
    dispatcher = NotificationDispatcher(expo=ExpoPushClient(relay_http_client), apns=apns)

    result = await dispatcher.dispatch(SUCCESS, IOS_NATIVE)
    assert isinstance(result, Failed)
    assert result.channel == PushChannel.APNS
