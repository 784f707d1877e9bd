"""Pydantic schemas for subscription API endpoints."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ....domain.models import Entitlement, EntitlementView, Snapshot, Subscription


class AddressPayload(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class StartSubscriptionRequest(BaseModel):
    """Request schema for starting or replacing a paid subscription."""

    plan: str
    billing_interval: str
    provider: Optional[str] = None
    trial_days: int = Field(0, ge=0)
    price_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    national_id: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[AddressPayload] = None

    def address_dict(self) -> Optional[Dict[str, Any]]:
        return self.address.model_dump() if self.address is not None else None


class CancelSubscriptionRequest(BaseModel):
    immediate: bool = False


class SubscriptionResponse(BaseModel):
    """Response schema for a ledger entry."""

    id: int
    plan: str
    status: str
    provider: str
    billing_interval: str
    price_id: Optional[str]
    amount: Optional[float]
    currency: Optional[str]
    trial_start: Optional[datetime]
    trial_end: Optional[datetime]
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    next_billing_date: Optional[datetime]
    cancel_at_period_end: bool
    canceled_at: Optional[datetime]
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            plan=subscription.plan,
            status=subscription.status,
            provider=subscription.provider,
            billing_interval=subscription.billing_interval,
            price_id=subscription.price_id,
            amount=subscription.amount,
            currency=subscription.currency,
            trial_start=subscription.trial_start,
            trial_end=subscription.trial_end,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            next_billing_date=subscription.next_billing_date,
            cancel_at_period_end=subscription.cancel_at_period_end,
            canceled_at=subscription.canceled_at,
            is_active=subscription.is_active(),
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
        )


class StartSubscriptionResponse(BaseModel):
    message: str
    subscription: SubscriptionResponse


class CancelSubscriptionResponse(BaseModel):
    message: str
    subscription: SubscriptionResponse


class SnapshotResponse(BaseModel):
    plan: str
    status: str
    provider: Optional[str] = None
    billing_interval: Optional[str] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls(
            plan=snapshot.plan,
            status=snapshot.status,
            provider=snapshot.provider,
            billing_interval=snapshot.billing_interval,
            trial_start=snapshot.trial_start,
            trial_end=snapshot.trial_end,
            current_period_start=snapshot.current_period_start,
            current_period_end=snapshot.current_period_end,
            next_billing_date=snapshot.next_billing_date,
        )


class DerivedEntitlementResponse(BaseModel):
    """Derived flags; ``is_expired`` can be true while the status is still active."""

    is_active: bool
    is_on_trial: bool
    remaining_days: Optional[int]
    ends_at: Optional[datetime]
    is_expired: bool

    @classmethod
    def from_entitlement(cls, entitlement: Entitlement) -> "DerivedEntitlementResponse":
        return cls(
            is_active=entitlement.is_active,
            is_on_trial=entitlement.is_on_trial,
            remaining_days=entitlement.remaining_days,
            ends_at=entitlement.ends_at,
            is_expired=entitlement.is_expired,
        )


class AccountSummaryResponse(BaseModel):
    id: int
    email: str
    first_name: Optional[str]
    last_name: Optional[str]


class EntitlementResponse(BaseModel):
    account: AccountSummaryResponse
    snapshot: SnapshotResponse
    derived: DerivedEntitlementResponse

    @classmethod
    def from_view(cls, view: EntitlementView) -> "EntitlementResponse":
        account = view.account
        return cls(
            account=AccountSummaryResponse(
                id=account.id,
                email=account.email,
                first_name=account.first_name,
                last_name=account.last_name,
            ),
            snapshot=SnapshotResponse.from_snapshot(view.snapshot),
            derived=DerivedEntitlementResponse.from_entitlement(view.entitlement),
        )


class PlanResponse(BaseModel):
    """Response schema for a public plan."""

    name: str
    price: float
    currency: str
