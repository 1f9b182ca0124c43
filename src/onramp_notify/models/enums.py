"""String enums shared by the webhook and push modules."""

from enum import StrEnum


class OutcomeType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class Platform(StrEnum):
    IOS = "ios"
    ANDROID = "android"
    UNKNOWN = "unknown"


class TokenType(StrEnum):
    NATIVE = "native"
    EXPO = "expo"


class PushChannel(StrEnum):
    APNS = "apns"
    EXPO = "expo"


class NotificationType(StrEnum):
    ONRAMP_COMPLETE = "onramp_complete"
    ONRAMP_FAILED = "onramp_failed"
