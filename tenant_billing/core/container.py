from dataclasses import dataclass

from ..application.services.account_auth_service import AccountAuthService
from ..application.services.period_end_sweeper import PeriodEndSweeper
from ..application.services.subscription_lifecycle import SubscriptionLifecycle
from ..domain.ports.persistence import PersistenceGateway
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    account_auth_service: AccountAuthService
    subscription_lifecycle: SubscriptionLifecycle
    period_end_sweeper: PeriodEndSweeper
