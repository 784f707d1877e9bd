"""Authoritative record of an account's subscription history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from ..domain.errors import InvalidTransitionError, NoActiveSubscriptionError
from ..domain.models import Snapshot, Subscription
from ..domain.models.plans import (
    STATUS_ACTIVE,
    STATUS_CANCELED,
    STATUS_FREE,
    STATUS_TRIALING,
    normalize_plan,
    validate_interval,
)
from ..domain.models.subscription import (
    EVENT_CANCEL_AT_PERIOD_END,
    EVENT_CANCEL_IMMEDIATE,
    EVENT_FINALIZE,
    EVENT_START,
    is_allowed,
)
from ..domain.ports.persistence import (
    IdentityPatch,
    SubscriptionLedgerRepository,
    SubscriptionTransition,
)
from .periods import compute_boundaries

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NoSubscription:
    pass


@dataclass(frozen=True, slots=True)
class Trialing:
    entry: Subscription


@dataclass(frozen=True, slots=True)
class Active:
    entry: Subscription


CurrentSubscription = Union[NoSubscription, Trialing, Active]


@dataclass(frozen=True, slots=True)
class PriceMeta:
    """Opaque price details reported by the payment collaborator."""

    price_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None


@dataclass(slots=True)
class LedgerWrite:
    account_id: int
    subscription: Subscription
    event: str
    previous_status: str

    @property
    def is_new(self) -> bool:
        return self.subscription.id is None


class SubscriptionLedger:
    """Builds ledger transitions and commits them together with the snapshot."""

    def __init__(self, repository: SubscriptionLedgerRepository) -> None:
        self._repository = repository

    def resolve_current(self, account_id: int) -> CurrentSubscription:
        entry = self._repository.get_current_subscription(account_id)
        if entry is None:
            return NoSubscription()
        if entry.status == STATUS_TRIALING:
            return Trialing(entry)
        return Active(entry)

    def history(self, account_id: int) -> List[Subscription]:
        return self._repository.list_subscriptions(account_id)

    def prepare_start(
        self,
        account_id: int,
        plan: str,
        billing_interval: str,
        trial_days: int,
        provider: str,
        price: PriceMeta,
        now: datetime,
    ) -> LedgerWrite:
        """
        Create a new entry or replace the current one in place.

        The last start wins: a replaced entry takes every field from the new
        intent and keeps nothing from its previous trial or period.
        """
        plan = normalize_plan(plan)
        validate_interval(billing_interval)
        boundaries = compute_boundaries(now, billing_interval, trial_days)
        status = STATUS_TRIALING if boundaries.is_trial else STATUS_ACTIVE

        current = self.resolve_current(account_id)
        if isinstance(current, NoSubscription):
            entry = Subscription(id=None, account_id=account_id, plan=plan, status=status,
                                 provider=provider, billing_interval=billing_interval)
            previous_status = STATUS_FREE
        else:
            entry = current.entry
            previous_status = entry.status

        self._check(previous_status, EVENT_START, status)
        entry.plan = plan
        entry.status = status
        entry.provider = provider
        entry.billing_interval = billing_interval
        entry.price_id = price.price_id
        entry.amount = price.amount
        entry.currency = price.currency
        entry.trial_start = boundaries.trial_start
        entry.trial_end = boundaries.trial_end
        entry.current_period_start = boundaries.current_period_start
        entry.current_period_end = boundaries.current_period_end
        entry.next_billing_date = boundaries.next_billing_date
        entry.cancel_at_period_end = False
        entry.canceled_at = None
        return LedgerWrite(account_id, entry, EVENT_START, previous_status)

    def prepare_cancel(self, account_id: int, immediate: bool, now: datetime) -> LedgerWrite:
        current = self.resolve_current(account_id)
        if isinstance(current, NoSubscription):
            raise NoActiveSubscriptionError(account_id)

        entry = current.entry
        previous_status = entry.status
        if immediate:
            self._check(previous_status, EVENT_CANCEL_IMMEDIATE, STATUS_CANCELED)
            entry.status = STATUS_CANCELED
            entry.canceled_at = now
            entry.cancel_at_period_end = False
            return LedgerWrite(account_id, entry, EVENT_CANCEL_IMMEDIATE, previous_status)

        self._check(previous_status, EVENT_CANCEL_AT_PERIOD_END, previous_status)
        entry.cancel_at_period_end = True
        return LedgerWrite(account_id, entry, EVENT_CANCEL_AT_PERIOD_END, previous_status)

    def prepare_finalize(self, account_id: int, now: datetime) -> Optional[LedgerWrite]:
        """
        End a flagged entry whose period elapsed.

        Returns ``None`` while the period is still running or the entry is not
        flagged. Raises ``NoActiveSubscriptionError`` when nothing is current.
        """
        current = self.resolve_current(account_id)
        if isinstance(current, NoSubscription):
            raise NoActiveSubscriptionError(account_id)

        entry = current.entry
        if not entry.cancel_at_period_end:
            return None
        if entry.next_billing_date is None or entry.next_billing_date > now:
            return None

        previous_status = entry.status
        self._check(previous_status, EVENT_FINALIZE, STATUS_CANCELED)
        entry.status = STATUS_CANCELED
        return LedgerWrite(account_id, entry, EVENT_FINALIZE, previous_status)

    def apply(
        self,
        write: LedgerWrite,
        snapshot: Snapshot,
        identity_patch: Optional[IdentityPatch] = None,
    ) -> Subscription:
        transition = SubscriptionTransition(
            account_id=write.account_id,
            subscription=write.subscription,
            snapshot=snapshot,
            identity_patch=identity_patch or IdentityPatch(),
        )
        saved = self._repository.commit_transition(transition)
        logger.info(
            "Subscription %s for account %s: %s %s -> %s",
            saved.id,
            write.account_id,
            write.event,
            write.previous_status,
            saved.status,
        )
        return saved

    @staticmethod
    def _check(current: str, event: str, target: str) -> None:
        if not is_allowed(current, event, target):
            raise InvalidTransitionError(current, event)
