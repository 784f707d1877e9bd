from datetime import datetime, timedelta, timezone

import pytest

from tenant_billing.application.services.subscription_lifecycle import SubscriptionLifecycle
from tenant_billing.infrastructure.persistence.sqlite import SQLitePersistence

FIXED_NOW = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)

VALID_IDENTITY = {
    "national_id": "0912345678",
    "phone": "+593991234567",
    "address": {"street": "Av. Amazonas 100", "city": "Quito", "country": "EC"},
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def persistence(tmp_path):
    store = SQLitePersistence(tmp_path / "billing.db")
    yield store
    store.close()


@pytest.fixture
def lifecycle(persistence, clock) -> SubscriptionLifecycle:
    return SubscriptionLifecycle(persistence, clock=clock)


@pytest.fixture
def account(persistence):
    return persistence.create_account("owner@example.com", first_name="Ana", last_name="Lopez")
