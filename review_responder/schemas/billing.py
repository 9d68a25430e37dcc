"""Schemas for billing endpoints"""
from pydantic import BaseModel, field_validator, field_serializer
from typing import Optional, List, Literal
from datetime import datetime
import uuid

from review_responder.utils.time_utils import to_utc_isoformat


class CheckoutRequest(BaseModel):
    location_id: uuid.UUID
    price_type: Literal["monthly", "yearly"] = "monthly"


class CheckoutResponse(BaseModel):
    session_id: str
    url: Optional[str] = None


class PortalResponse(BaseModel):
    url: Optional[str] = None


class SubscriptionResponse(BaseModel):
    """Local mirror of a location's Stripe subscription"""
    id: str
    location_id: str
    stripe_subscription_id: str
    stripe_price_id: Optional[str] = None
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    is_active: bool
    created_at: datetime

    @field_validator('id', 'location_id', mode='before')
    @classmethod
    def convert_uuid_to_str(cls, v):
        """Convert UUID objects to strings"""
        if isinstance(v, uuid.UUID):
            return str(v)
        return v

    @field_serializer('current_period_start', 'current_period_end', 'trial_end', 'created_at')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return to_utc_isoformat(value)

    class Config:
        from_attributes = True


class SubscriptionListResponse(BaseModel):
    subscriptions: List[SubscriptionResponse]


class WebhookResponse(BaseModel):
    received: bool
    handled: bool
