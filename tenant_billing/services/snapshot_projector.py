from __future__ import annotations

from typing import Optional

from ..domain.models import Snapshot, Subscription


def project(subscription: Optional[Subscription]) -> Snapshot:
    """Mirror the current subscription onto the account, or fall back to free."""
    if subscription is None or not subscription.is_active():
        return Snapshot.free()
    return Snapshot(
        plan=subscription.plan,
        status=subscription.status,
        provider=subscription.provider,
        billing_interval=subscription.billing_interval,
        trial_start=subscription.trial_start,
        trial_end=subscription.trial_end,
        current_period_start=subscription.current_period_start,
        current_period_end=subscription.current_period_end,
        next_billing_date=subscription.next_billing_date,
    )
