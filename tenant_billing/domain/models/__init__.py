"""Domain models for the tenant billing service."""

from .account import Account, Address, BillingIdentity, Snapshot
from .entitlement import Entitlement, EntitlementView
from .subscription import Subscription

__all__ = [
    "Account",
    "Address",
    "BillingIdentity",
    "Entitlement",
    "EntitlementView",
    "Snapshot",
    "Subscription",
]
