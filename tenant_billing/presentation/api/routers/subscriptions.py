"""API router for tenant subscription management."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from tenant_billing.application.services.subscription_lifecycle import SubscriptionLifecycle
from tenant_billing.core.dependencies import get_subscription_lifecycle
from tenant_billing.domain.errors import (
    AccountNotFoundError,
    BillingError,
    NoActiveSubscriptionError,
    SubscriptionConflictError,
)
from tenant_billing.domain.models.plans import PLAN_CATALOG
from tenant_billing.presentation.api.dependencies import require_account_id
from tenant_billing.presentation.api.schemas.subscription_schemas import (
    CancelSubscriptionRequest,
    CancelSubscriptionResponse,
    EntitlementResponse,
    PlanResponse,
    StartSubscriptionRequest,
    StartSubscriptionResponse,
    SubscriptionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


def _to_http_error(exc: BillingError) -> HTTPException:
    if isinstance(exc, (AccountNotFoundError, NoActiveSubscriptionError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, SubscriptionConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/plans", response_model=List[PlanResponse])
async def get_plans() -> List[PlanResponse]:
    """Get the public plan catalog."""
    return [PlanResponse(**plan) for plan in PLAN_CATALOG]


@router.get("/me", response_model=EntitlementResponse)
async def get_my_subscription(
    account_id: int = Depends(require_account_id),
    lifecycle: SubscriptionLifecycle = Depends(get_subscription_lifecycle),
) -> EntitlementResponse:
    """Get the entitlement snapshot and derived flags for the current account."""
    try:
        view = lifecycle.get_entitlement(account_id)
    except BillingError as e:
        raise _to_http_error(e)
    return EntitlementResponse.from_view(view)


@router.get("", response_model=List[SubscriptionResponse])
async def list_my_subscriptions(
    account_id: int = Depends(require_account_id),
    lifecycle: SubscriptionLifecycle = Depends(get_subscription_lifecycle),
) -> List[SubscriptionResponse]:
    """List every subscription of the current account, newest first."""
    try:
        subscriptions = lifecycle.list_subscriptions(account_id)
    except BillingError as e:
        raise _to_http_error(e)
    return [SubscriptionResponse.from_entity(sub) for sub in subscriptions]


@router.post("/start", response_model=StartSubscriptionResponse)
async def start_subscription(
    request: StartSubscriptionRequest,
    response: Response,
    account_id: int = Depends(require_account_id),
    lifecycle: SubscriptionLifecycle = Depends(get_subscription_lifecycle),
) -> StartSubscriptionResponse:
    """Start a paid plan, replacing the current one if present."""
    try:
        result = lifecycle.start_subscription(
            account_id=account_id,
            plan=request.plan,
            billing_interval=request.billing_interval,
            trial_days=request.trial_days,
            provider=request.provider,
            price_id=request.price_id,
            amount=request.amount,
            currency=request.currency,
            national_id=request.national_id,
            phone=request.phone,
            address=request.address_dict(),
        )
    except BillingError as e:
        logger.info("Start subscription rejected for account %s: %s", account_id, e)
        raise _to_http_error(e)

    if result.created:
        response.status_code = status.HTTP_201_CREATED
        message = "Subscription created"
    else:
        message = "Subscription updated"
    return StartSubscriptionResponse(
        message=message,
        subscription=SubscriptionResponse.from_entity(result.subscription),
    )


@router.post("/cancel", response_model=CancelSubscriptionResponse)
async def cancel_subscription(
    request: Optional[CancelSubscriptionRequest] = None,
    account_id: int = Depends(require_account_id),
    lifecycle: SubscriptionLifecycle = Depends(get_subscription_lifecycle),
) -> CancelSubscriptionResponse:
    """Cancel the current subscription immediately or at the end of its period."""
    immediate = request.immediate if request is not None else False
    try:
        subscription = lifecycle.cancel_subscription(account_id, immediate=immediate)
    except BillingError as e:
        raise _to_http_error(e)

    if immediate:
        message = "Subscription canceled immediately"
    else:
        message = "Subscription will be canceled at the end of the billing period"
    return CancelSubscriptionResponse(
        message=message,
        subscription=SubscriptionResponse.from_entity(subscription),
    )
