import pytest

from tenant_billing.domain.errors import IntervalInvalidError, PlanInvalidError
from tenant_billing.domain.models.plans import (
    PAID_PLANS,
    PLAN_ALIASES,
    normalize_plan,
    validate_interval,
)


@pytest.mark.parametrize(
    "alias,expected",
    [
        ("starter", "starter"),
        ("pro", "pro"),
        ("enterprise", "enterprise"),
        ("advanced", "pro"),
        ("Advanced", "pro"),
        ("  STARTER ", "starter"),
    ],
)
def test_aliases_resolve_to_paid_plans(alias, expected):
    assert normalize_plan(alias) == expected


@pytest.mark.parametrize("plan", ["free", "basic", "", None])
def test_unknown_plans_are_rejected(plan):
    with pytest.raises(PlanInvalidError):
        normalize_plan(plan)


def test_alias_table_stays_inside_the_enumeration():
    assert set(PLAN_ALIASES.values()) == set(PAID_PLANS)


def test_intervals():
    assert validate_interval("monthly") == "monthly"
    assert validate_interval("yearly") == "yearly"
    with pytest.raises(IntervalInvalidError):
        validate_interval("Monthly")
