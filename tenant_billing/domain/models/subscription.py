"""Subscription ledger entry and the lifecycle state table."""

from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

from .plans import CURRENT_STATUSES, STATUS_ACTIVE, STATUS_CANCELED, STATUS_FREE, STATUS_TRIALING

EVENT_START = "start"
EVENT_CANCEL_IMMEDIATE = "cancel_immediate"
EVENT_CANCEL_AT_PERIOD_END = "cancel_at_period_end"
EVENT_FINALIZE = "finalize"

# (current state, event) -> states the event may lead to.
TRANSITIONS: Dict[Tuple[str, str], FrozenSet[str]] = {
    (STATUS_FREE, EVENT_START): frozenset({STATUS_TRIALING, STATUS_ACTIVE}),
    (STATUS_TRIALING, EVENT_START): frozenset({STATUS_TRIALING, STATUS_ACTIVE}),
    (STATUS_ACTIVE, EVENT_START): frozenset({STATUS_TRIALING, STATUS_ACTIVE}),
    (STATUS_TRIALING, EVENT_CANCEL_IMMEDIATE): frozenset({STATUS_CANCELED}),
    (STATUS_ACTIVE, EVENT_CANCEL_IMMEDIATE): frozenset({STATUS_CANCELED}),
    (STATUS_TRIALING, EVENT_CANCEL_AT_PERIOD_END): frozenset({STATUS_TRIALING}),
    (STATUS_ACTIVE, EVENT_CANCEL_AT_PERIOD_END): frozenset({STATUS_ACTIVE}),
    (STATUS_TRIALING, EVENT_FINALIZE): frozenset({STATUS_CANCELED}),
    (STATUS_ACTIVE, EVENT_FINALIZE): frozenset({STATUS_CANCELED}),
}


def is_allowed(current: str, event: str, target: str) -> bool:
    return target in TRANSITIONS.get((current, event), frozenset())


class Subscription:
    """
    Subscription entity representing one entry of an account's billing history.

    Attributes:
        id: Unique identifier, ``None`` until persisted
        account_id: Owning account
        plan: starter, pro or enterprise
        status: trialing, active or canceled
        provider: Opaque payment rail identifier
        billing_interval: monthly or yearly
        price_id: Provider price identifier (opaque)
        amount: Amount charged per period (opaque)
        currency: Currency of ``amount``
        trial_start: Start of the trial window, set only while trialing
        trial_end: End of the trial window, set only while trialing
        current_period_start: Start of the paid period, unset while trialing
        current_period_end: End of the paid period, unset while trialing
        next_billing_date: ``trial_end`` while trialing, else ``current_period_end``
        cancel_at_period_end: Whether the entry ends when its period elapses
        canceled_at: Set only by an immediate cancellation
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: Optional[int],
        account_id: int,
        plan: str,
        status: str,
        provider: str,
        billing_interval: str,
        price_id: Optional[str] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
        trial_start: Optional[datetime] = None,
        trial_end: Optional[datetime] = None,
        current_period_start: Optional[datetime] = None,
        current_period_end: Optional[datetime] = None,
        next_billing_date: Optional[datetime] = None,
        cancel_at_period_end: bool = False,
        canceled_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.account_id = account_id
        self.plan = plan
        self.status = status
        self.provider = provider
        self.billing_interval = billing_interval
        self.price_id = price_id
        self.amount = amount
        self.currency = currency
        self.trial_start = trial_start
        self.trial_end = trial_end
        self.current_period_start = current_period_start
        self.current_period_end = current_period_end
        self.next_billing_date = next_billing_date
        self.cancel_at_period_end = cancel_at_period_end
        self.canceled_at = canceled_at
        self.created_at = created_at
        self.updated_at = updated_at

    def is_active(self) -> bool:
        """Check if the entry is the account's current subscription."""
        return self.status in CURRENT_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Subscription id={self.id} account_id={self.account_id} "
            f"plan={self.plan} status={self.status}>"
        )
