"""Typed failures raised by the subscription lifecycle."""

from __future__ import annotations


class BillingError(ValueError):
    """Base class for every recoverable billing failure."""


class IdentityInvalidError(BillingError):
    """National id, phone or address is missing or malformed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class PlanInvalidError(BillingError):
    def __init__(self, plan: str) -> None:
        super().__init__(f"Unknown plan: {plan!r}")
        self.plan = plan


class IntervalInvalidError(BillingError):
    def __init__(self, interval: str) -> None:
        super().__init__(f"Unknown billing interval: {interval!r}")
        self.interval = interval


class AccountNotFoundError(BillingError):
    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class NoActiveSubscriptionError(BillingError):
    def __init__(self, account_id: int) -> None:
        super().__init__("No active subscription to cancel")
        self.account_id = account_id


class InvalidTransitionError(BillingError):
    def __init__(self, current: str, event: str) -> None:
        super().__init__(f"Transition {event!r} is not allowed from {current!r}")
        self.current = current
        self.event = event


class SubscriptionConflictError(BillingError):
    """Another writer created a current subscription for the account concurrently."""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account {account_id} already has a current subscription")
        self.account_id = account_id
