"""Account domain model with its billing identity and entitlement snapshot."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .plans import PLAN_FREE, STATUS_FREE


@dataclass(slots=True)
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    def is_filled(self) -> bool:
        """An address counts once street, city or country is known."""
        return bool(self.street or self.city or self.country)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Address"]:
        if not data:
            return None
        return cls(
            street=data.get("street"),
            city=data.get("city"),
            state=data.get("state"),
            zip_code=data.get("zip_code"),
            country=data.get("country"),
        )


@dataclass(slots=True)
class BillingIdentity:
    national_id: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None


@dataclass(slots=True)
class Snapshot:
    """
    Read-optimized mirror of the account's current subscription.

    Attributes:
        plan: Paid plan name, or ``free`` when nothing is current
        status: ``trialing``, ``active`` or ``free``
        provider: Payment rail reported by the collaborator
        billing_interval: ``monthly`` or ``yearly``
        trial_start: Start of the trial window
        trial_end: End of the trial window
        current_period_start: Start of the paid period
        current_period_end: End of the paid period
        next_billing_date: Trial end while trialing, period end otherwise
    """

    plan: str = PLAN_FREE
    status: str = STATUS_FREE
    provider: Optional[str] = None
    billing_interval: Optional[str] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    @classmethod
    def free(cls) -> "Snapshot":
        return cls()

    def is_free(self) -> bool:
        return self.plan == PLAN_FREE and self.status == STATUS_FREE


@dataclass(slots=True)
class Account:
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    billing_identity: BillingIdentity = field(default_factory=BillingIdentity)
    snapshot: Snapshot = field(default_factory=Snapshot.free)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
