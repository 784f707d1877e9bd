"""Closed enumerations for plans, statuses and billing intervals."""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..errors import IntervalInvalidError, PlanInvalidError

PLAN_FREE = "free"
PLAN_STARTER = "starter"
PLAN_PRO = "pro"
PLAN_ENTERPRISE = "enterprise"

PAID_PLANS: Tuple[str, ...] = (PLAN_STARTER, PLAN_PRO, PLAN_ENTERPRISE)

# UI names accepted by the start operation, mapped onto the paid plans.
PLAN_ALIASES: Dict[str, str] = {
    "starter": PLAN_STARTER,
    "pro": PLAN_PRO,
    "enterprise": PLAN_ENTERPRISE,
    "advanced": PLAN_PRO,
}

STATUS_FREE = "free"
STATUS_TRIALING = "trialing"
STATUS_ACTIVE = "active"
STATUS_CANCELED = "canceled"

CURRENT_STATUSES: Tuple[str, ...] = (STATUS_TRIALING, STATUS_ACTIVE)

INTERVAL_MONTHLY = "monthly"
INTERVAL_YEARLY = "yearly"

BILLING_INTERVALS: Tuple[str, ...] = (INTERVAL_MONTHLY, INTERVAL_YEARLY)

# Public price list shown on the pricing page.
PLAN_CATALOG: List[Dict[str, object]] = [
    {"name": "Free", "price": 0, "currency": "USD"},
    {"name": "Starter", "price": 18, "currency": "USD"},
    {"name": "Advanced", "price": 49, "currency": "USD"},
]


def normalize_plan(plan: str) -> str:
    """Resolve a plan name or UI alias to one of ``PAID_PLANS``."""
    resolved = PLAN_ALIASES.get((plan or "").strip().lower())
    if resolved is None:
        raise PlanInvalidError(plan)
    return resolved


def validate_interval(interval: str) -> str:
    if interval not in BILLING_INTERVALS:
        raise IntervalInvalidError(interval)
    return interval
