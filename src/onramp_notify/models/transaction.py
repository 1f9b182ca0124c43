"""Normalized transaction outcome produced from an onramp webhook."""

from pydantic import BaseModel, ConfigDict

from onramp_notify.models.enums import OutcomeType


class TransactionOutcome(BaseModel):
    """Canonical view of one webhook event.

    For ``success`` outcomes ``amount``/``currency`` are what the user received
    (purchase side); for ``failed`` outcomes they are what the user paid
    (payment side).
    """

    model_config = ConfigDict(extra="forbid")

    event_type: str | None = None
    outcome: OutcomeType = OutcomeType.UNKNOWN
    transaction_id: str | None = None
    amount: str | None = None
    currency: str | None = None
    network: str | None = None
    destination_address: str | None = None
    failure_reason: str | None = None
    partner_user_ref: str | None = None

    @property
    def notifies(self) -> bool:
        """Only terminal outcomes produce a user notification."""
        return self.outcome in (OutcomeType.SUCCESS, OutcomeType.FAILED)
