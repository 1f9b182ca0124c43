"""Pydantic models for push tokens and notifications."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from onramp_notify.models.enums import Platform, TokenType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PushTokenRecord(BaseModel):
    """Latest device registration for one partner user reference."""

    token: str = Field(..., min_length=1)
    platform: Platform = Platform.UNKNOWN
    token_type: TokenType = TokenType.NATIVE
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value: Any) -> Any:
        if value is None:
            return Platform.UNKNOWN
        value = str(value).lower()
        return value if value in Platform._value2member_map_ else Platform.UNKNOWN

    @field_validator("token_type", mode="before")
    @classmethod
    def _default_token_type(cls, value: Any) -> Any:
        # Records written before token types existed are native tokens
        return TokenType.NATIVE if value in (None, "") else value


class PushNotification(BaseModel):
    """Channel-independent notification content."""

    model_config = ConfigDict(extra="forbid")

    title: str
    body: str
    data: dict[str, Any]


class PendingNotification(BaseModel):
    """Notification held for clients that poll instead of receiving pushes."""

    id: str
    user_id: str
    title: str
    body: str
    data: dict[str, Any]
    created_at: datetime = Field(default_factory=_utcnow)


class PushTokenRegistration(BaseModel):
    """Request body for ``POST /push-tokens``."""

    user_id: str | None = Field(None, alias="userId")
    push_token: str | None = Field(None, alias="pushToken")
    platform: str | None = None
    token_type: TokenType | None = Field(None, alias="tokenType")

    model_config = ConfigDict(populate_by_name=True)
