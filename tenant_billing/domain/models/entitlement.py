from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .account import Account, Snapshot


@dataclass(slots=True)
class Entitlement:
    """
    Derived view of whether paid features are available right now.

    ``is_expired`` is advisory: an elapsed period still reads as active until
    the period-end sweep (or a payment collaborator) changes the status.
    """

    is_active: bool = False
    is_on_trial: bool = False
    remaining_days: Optional[int] = None
    ends_at: Optional[datetime] = None
    is_expired: bool = False


@dataclass(slots=True)
class EntitlementView:
    account: Account
    snapshot: Snapshot
    entitlement: Entitlement
