from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .clock import Clock
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.account_auth_service import AccountAuthService
from ..application.services.period_end_sweeper import PeriodEndSweeper
from ..application.services.subscription_lifecycle import SubscriptionLifecycle
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.routers import subscriptions as subscriptions_router

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Tenant Billing", lifespan=_create_lifespan(settings, clock))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(subscriptions_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def build_container(settings: Settings, clock: Optional[Clock] = None) -> ApplicationContainer:
    """Wire persistence and services; shared by the API and the sweep script."""
    persistence = SQLitePersistence(settings.database_path)
    lifecycle = SubscriptionLifecycle(
        persistence,
        default_provider=settings.default_payment_provider,
        default_currency=settings.default_currency,
        clock=clock,
    )
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        account_auth_service=AccountAuthService(
            secret_key=settings.account_token_secret,
            algorithm=settings.account_token_algorithm,
        ),
        subscription_lifecycle=lifecycle,
        period_end_sweeper=PeriodEndSweeper(lifecycle, batch_limit=settings.sweep_batch_limit),
    )


def _create_lifespan(settings: Settings, clock: Optional[Clock]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings, clock)
        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Billing database ready at %s", settings.database_path)

        try:
            yield
        finally:
            container.persistence.close()

    return lifespan
