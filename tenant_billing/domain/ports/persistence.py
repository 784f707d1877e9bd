from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from ..models import Account, Address, Snapshot, Subscription


@dataclass(slots=True)
class IdentityPatch:
    """Billing identity fields to backfill on the account; ``None`` means untouched."""

    national_id: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None

    def is_empty(self) -> bool:
        return self.national_id is None and self.phone is None and self.address is None


@dataclass(slots=True)
class SubscriptionTransition:
    """
    One lifecycle step applied through a single persistence call.

    The ledger entry, the account snapshot and the identity patch are written in
    the same transaction so readers never see the snapshot out of step with the
    ledger.
    """

    account_id: int
    subscription: Subscription
    snapshot: Snapshot
    identity_patch: IdentityPatch = field(default_factory=IdentityPatch)


class AccountRepository(Protocol):
    """Persistence functions related to tenant accounts."""

    def create_account(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Account:
        ...

    def get_account(self, account_id: int) -> Optional[Account]:
        ...


class SubscriptionLedgerRepository(Protocol):
    """Persistence functions related to the subscription ledger."""

    def get_current_subscription(self, account_id: int) -> Optional[Subscription]:
        ...

    def list_subscriptions(self, account_id: int) -> List[Subscription]:
        ...

    def list_due_for_period_end(self, now: datetime, limit: int = 500) -> List[Subscription]:
        ...

    def commit_transition(self, transition: SubscriptionTransition) -> Subscription:
        ...


class PersistenceGateway(AccountRepository, SubscriptionLedgerRepository, Protocol):
    """Composite gateway combining every persistence concern used by the service."""

    def close(self) -> None:
        ...
