from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ...core.clock import Clock, utc_now
from ...domain.errors import AccountNotFoundError, NoActiveSubscriptionError, SubscriptionConflictError
from ...domain.models import Account, Entitlement, EntitlementView, Snapshot, Subscription
from ...domain.models.plans import STATUS_ACTIVE, STATUS_TRIALING, normalize_plan, validate_interval
from ...domain.ports.persistence import IdentityPatch, PersistenceGateway
from ...services.identity_validator import BillingIdentityValidator
from ...services.ledger import LedgerWrite, PriceMeta, SubscriptionLedger
from ...services.periods import days_between
from ...services.snapshot_projector import project

logger = logging.getLogger(__name__)

_START_ATTEMPTS = 2


@dataclass(slots=True)
class StartResult:
    subscription: Subscription
    created: bool


@dataclass(slots=True)
class _LockSlot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class _AccountLocks:
    """One mutex per account id, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: Dict[int, _LockSlot] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)

    @contextmanager
    def hold(self, account_id: int) -> Iterator[None]:
        with self._guard:
            slot = self._slots.setdefault(account_id, _LockSlot())
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[account_id]


class SubscriptionLifecycle:
    """Drives start and cancel transitions and derives the entitlement view."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        default_provider: str = "payphone",
        default_currency: str = "USD",
        clock: Optional[Clock] = None,
        identity_validator: Optional[BillingIdentityValidator] = None,
    ) -> None:
        self._persistence = persistence
        self._ledger = SubscriptionLedger(persistence)
        self._validator = identity_validator or BillingIdentityValidator()
        self._default_provider = default_provider
        self._default_currency = default_currency
        self._clock = clock or utc_now
        self._locks = _AccountLocks()

    # ------------------------------------------------------------------
    def start_subscription(
        self,
        account_id: int,
        plan: str,
        billing_interval: str,
        trial_days: int = 0,
        provider: Optional[str] = None,
        price_id: Optional[str] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
        national_id: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[Mapping[str, Any]] = None,
    ) -> StartResult:
        """
        Start a paid plan, replacing the current subscription if there is one.

        Args:
            account_id: Authenticated account
            plan: Plan name or UI alias (``advanced`` is ``pro``)
            billing_interval: monthly or yearly
            trial_days: Trial length in days; zero starts billing immediately
            provider: Payment rail, defaults to the configured provider
            price_id: Provider price identifier
            amount: Amount charged per period
            currency: Currency of ``amount``, defaults to the configured currency
            national_id: Required unless the account already has one
            phone: Required unless the account already has one
            address: Required unless the account already has one

        Returns:
            The resulting subscription and whether it was newly created

        Raises:
            PlanInvalidError, IntervalInvalidError, AccountNotFoundError,
            IdentityInvalidError, SubscriptionConflictError (concurrent start
            from another process that still wins after one retry)
        """
        normalize_plan(plan)
        validate_interval(billing_interval)
        with self._locks.hold(account_id):
            account = self._require_account(account_id)
            patch = self._validator.build_patch(account, national_id, phone, address)
            price = PriceMeta(price_id=price_id, amount=amount, currency=currency or self._default_currency)
            attempt = 1
            while True:
                write = self._ledger.prepare_start(
                    account_id,
                    plan,
                    billing_interval,
                    trial_days,
                    provider or self._default_provider,
                    price,
                    self._clock(),
                )
                created = write.is_new
                try:
                    subscription = self._commit(write, patch)
                    break
                except SubscriptionConflictError:
                    # Another process inserted first; the next attempt replaces its entry.
                    if attempt >= _START_ATTEMPTS:
                        raise
                    attempt += 1
                    logger.warning(
                        "Account %s gained a current subscription concurrently; retrying as a replace",
                        account_id,
                    )
        return StartResult(subscription=subscription, created=created)

    def cancel_subscription(self, account_id: int, immediate: bool = False) -> Subscription:
        """
        Cancel the current subscription now or at the end of its period.

        Raises:
            NoActiveSubscriptionError: If nothing is trialing or active
        """
        with self._locks.hold(account_id):
            write = self._ledger.prepare_cancel(account_id, immediate, self._clock())
            return self._commit(write)

    def finalize_period_end(self, account_id: int) -> Optional[Subscription]:
        """Cancel a flagged subscription whose period elapsed; repeat calls do nothing."""
        with self._locks.hold(account_id):
            try:
                write = self._ledger.prepare_finalize(account_id, self._clock())
            except NoActiveSubscriptionError:
                # Already canceled, by the owner or an earlier sweep.
                write = None
            if write is None:
                logger.debug("Nothing to finalize for account %s", account_id)
                return None
            return self._commit(write)

    def get_entitlement(self, account_id: int) -> EntitlementView:
        account = self._require_account(account_id)
        snapshot = account.snapshot
        return EntitlementView(
            account=account,
            snapshot=snapshot,
            entitlement=derive_entitlement(snapshot, self._clock()),
        )

    def list_subscriptions(self, account_id: int) -> List[Subscription]:
        self._require_account(account_id)
        return self._ledger.history(account_id)

    def list_due_for_period_end(self, limit: int = 500) -> List[Subscription]:
        return self._persistence.list_due_for_period_end(self._clock(), limit)

    # ------------------------------------------------------------------
    def _require_account(self, account_id: int) -> Account:
        account = self._persistence.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _commit(self, write: LedgerWrite, patch: Optional[IdentityPatch] = None) -> Subscription:
        snapshot = project(write.subscription)
        return self._ledger.apply(write, snapshot, patch)


def derive_entitlement(snapshot: Snapshot, now: datetime) -> Entitlement:
    """
    Compute the entitlement flags for a snapshot at ``now``.

    Expiry is not acted upon here: a period that has elapsed reports
    ``is_expired=True`` while the status still reads active or trialing.
    """
    if snapshot.status == STATUS_TRIALING and snapshot.trial_end:
        return Entitlement(
            is_active=True,
            is_on_trial=True,
            remaining_days=days_between(now, snapshot.trial_end),
            ends_at=snapshot.trial_end,
            is_expired=snapshot.trial_end < now,
        )
    if snapshot.status == STATUS_ACTIVE and snapshot.current_period_end:
        return Entitlement(
            is_active=True,
            remaining_days=days_between(now, snapshot.current_period_end),
            ends_at=snapshot.current_period_end,
            is_expired=snapshot.current_period_end < now,
        )
    return Entitlement(is_active=snapshot.status in (STATUS_ACTIVE, STATUS_TRIALING))
