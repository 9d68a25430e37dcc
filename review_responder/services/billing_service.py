"""
Per-location Stripe billing

Each location is billed separately: checkout creates a subscription for one
location and webhook events keep the local Subscription row and the
location's is_active flag in step with Stripe.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

import stripe
from sqlalchemy.orm import Session

from review_responder.config import settings
from review_responder.core.exceptions import NotFoundError
from review_responder.models.location import Location
from review_responder.models.subscription import Subscription
from review_responder.models.user import User
from review_responder.utils.time_utils import from_unix_timestamp

logger = logging.getLogger(__name__)

PRICING = {
    "monthly": {
        "amount": settings.STRIPE_MONTHLY_PRICE_CENTS,
        "interval": "month",
        "trial_days": settings.STRIPE_TRIAL_DAYS,
    },
    "yearly": {
        "amount": settings.STRIPE_YEARLY_PRICE_CENTS,
        "interval": "year",
        "trial_days": settings.STRIPE_TRIAL_DAYS,
    },
}


def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a key from a Stripe object or plain dict"""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError):
        return default
    return default if value is None else value


def _first_item(subscription: Any) -> Any:
    items = _field(_field(subscription, "items"), "data", [])
    return items[0] if items else None


def _period_bounds(subscription: Any) -> Tuple[Optional[int], Optional[int]]:
    """Billing period, from the subscription or (newer API versions) its first item"""
    start = _field(subscription, "current_period_start")
    end = _field(subscription, "current_period_end")
    if start is None or end is None:
        item = _first_item(subscription)
        start = start if start is not None else _field(item, "current_period_start")
        end = end if end is not None else _field(item, "current_period_end")
    return start, end


def _parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class BillingService:
    """Service for Stripe checkout, portal and webhook handling"""

    def __init__(self, db: Session, stripe_client: Any = None):
        self.db = db
        if stripe_client is None:
            stripe.api_key = settings.STRIPE_SECRET_KEY
            stripe_client = stripe
        self.stripe = stripe_client

    # ============================================
    # Customer-facing sessions
    # ============================================

    def get_or_create_customer(self, user: User) -> str:
        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer = self.stripe.Customer.create(
            email=user.email,
            name=user.display_name or None,
            metadata={"user_id": str(user.id)}
        )
        user.stripe_customer_id = _field(customer, "id")
        self.db.commit()

        logger.info(f"Created Stripe customer {user.stripe_customer_id} for user {user.id}")
        return user.stripe_customer_id

    def create_checkout_session(self, user: User, location_id: uuid.UUID, price_type: str = "monthly") -> Dict[str, str]:
        """
        Start a subscription checkout for one location

        Raises:
            NotFoundError: Location missing or not owned by the user
            ValueError: Invalid price type or location already subscribed
        """
        if price_type not in PRICING:
            raise ValueError('Invalid price_type. Must be "monthly" or "yearly"')

        location = self.db.query(Location).filter(
            Location.id == location_id,
            Location.user_id == user.id
        ).first()
        if location is None:
            raise NotFoundError("Location not found")
        if location.has_active_subscription:
            raise ValueError("This location already has an active subscription")

        customer_id = self.get_or_create_customer(user)
        pricing = PRICING[price_type]
        metadata = {"user_id": str(user.id), "location_id": str(location.id)}
        base_url = settings.APP_BASE_URL.rstrip("/")

        session = self.stripe.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": "usd",
                    "product_data": {
                        "name": f"Local Review Responder - {location.title}",
                        "description": f"Review management for {location.title}",
                    },
                    "unit_amount": pricing["amount"],
                    "recurring": {"interval": pricing["interval"]},
                },
                "quantity": 1,
            }],
            subscription_data={
                "trial_period_days": pricing["trial_days"],
                "metadata": metadata,
            },
            metadata=metadata,
            success_url=f"{base_url}/dashboard?subscription=success&location={location.id}",
            cancel_url=f"{base_url}/dashboard/add-location?canceled=true",
        )

        logger.info(f"Created {price_type} checkout session for location {location.id}")
        return {"session_id": _field(session, "id"), "url": _field(session, "url")}

    def create_portal_session(self, user: User) -> Dict[str, str]:
        """
        Raises:
            NotFoundError: User has no Stripe customer yet
        """
        if not user.stripe_customer_id:
            raise NotFoundError("No billing account found")

        session = self.stripe.billing_portal.Session.create(
            customer=user.stripe_customer_id,
            return_url=f"{settings.APP_BASE_URL.rstrip('/')}/dashboard",
        )
        return {"url": _field(session, "url")}

    def list_subscriptions(self, user_id: uuid.UUID) -> List[Subscription]:
        return self.db.query(Subscription).filter(
            Subscription.user_id == user_id
        ).order_by(Subscription.created_at.desc()).all()

    # ============================================
    # Webhooks
    # ============================================

    def construct_event(self, payload: bytes, signature: str) -> Any:
        """
        Verify and parse a webhook payload

        Raises:
            ValueError: Malformed payload
            stripe.SignatureVerificationError: Bad signature
        """
        return self.stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)

    def handle_event(self, event: Any) -> bool:
        """
        Apply a webhook event to local state

        Returns:
            False for event types this service ignores
        """
        event_type = _field(event, "type")
        obj = _field(_field(event, "data"), "object")

        handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.created": self._handle_subscription_updated,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_succeeded": self._handle_payment_succeeded,
            "invoice.payment_failed": self._handle_payment_failed,
        }

        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return False

        handler(obj)
        self.db.commit()
        return True

    def _get_by_stripe_id(self, stripe_subscription_id: Optional[str]) -> Optional[Subscription]:
        if not stripe_subscription_id:
            return None
        return self.db.query(Subscription).filter(
            Subscription.stripe_subscription_id == stripe_subscription_id
        ).first()

    def _set_location_active(self, location_id: uuid.UUID, is_active: bool):
        location = self.db.query(Location).filter(Location.id == location_id).first()
        if location is not None:
            location.is_active = is_active

    @staticmethod
    def _apply_stripe_state(record: Subscription, subscription: Any):
        start, end = _period_bounds(subscription)
        price_id = _field(_field(_first_item(subscription), "price"), "id")

        record.stripe_subscription_id = _field(subscription, "id")
        if price_id:
            record.stripe_price_id = price_id
        record.status = _field(subscription, "status")
        record.current_period_start = from_unix_timestamp(start)
        record.current_period_end = from_unix_timestamp(end)
        record.trial_end = from_unix_timestamp(_field(subscription, "trial_end"))
        record.cancel_at_period_end = bool(_field(subscription, "cancel_at_period_end", False))

    def _upsert_for_location(self, location_id: uuid.UUID, user_id: Optional[uuid.UUID], subscription: Any) -> bool:
        location = self.db.query(Location).filter(Location.id == location_id).first()
        if location is None:
            logger.error(f"Stripe subscription {_field(subscription, 'id')} references unknown location {location_id}")
            return False

        record = self.db.query(Subscription).filter(Subscription.location_id == location.id).first()
        if record is None:
            record = Subscription(location_id=location.id, user_id=user_id or location.user_id)
            self.db.add(record)

        self._apply_stripe_state(record, subscription)
        location.is_active = record.is_active
        return True

    def _handle_checkout_completed(self, session: Any):
        metadata = _field(session, "metadata", {})
        location_id = _parse_uuid(_field(metadata, "location_id"))
        user_id = _parse_uuid(_field(metadata, "user_id"))

        if location_id is None or user_id is None:
            logger.error(f"Missing metadata in checkout session {_field(session, 'id')}")
            return

        subscription_id = _field(session, "subscription")
        if not subscription_id:
            logger.error(f"No subscription in checkout session {_field(session, 'id')}")
            return
        if not isinstance(subscription_id, str):
            subscription_id = _field(subscription_id, "id")

        subscription = self.stripe.Subscription.retrieve(subscription_id)
        if self._upsert_for_location(location_id, user_id, subscription):
            logger.info(f"Activated location {location_id} for user {user_id}")

    def _handle_subscription_updated(self, subscription: Any):
        metadata = _field(subscription, "metadata", {})
        location_id = _parse_uuid(_field(metadata, "location_id"))

        if location_id is not None:
            self._upsert_for_location(location_id, _parse_uuid(_field(metadata, "user_id")), subscription)
            return

        record = self._get_by_stripe_id(_field(subscription, "id"))
        if record is None:
            logger.info(f"No local subscription found for {_field(subscription, 'id')}")
            return

        self._apply_stripe_state(record, subscription)
        self._set_location_active(record.location_id, record.is_active)

    def _handle_subscription_deleted(self, subscription: Any):
        record = self._get_by_stripe_id(_field(subscription, "id"))
        if record is None:
            logger.info(f"No local subscription found for deleted {_field(subscription, 'id')}")
            return

        record.status = "canceled"
        self._set_location_active(record.location_id, False)
        logger.info(f"Deactivated location {record.location_id}")

    @staticmethod
    def _invoice_subscription_id(invoice: Any) -> Optional[str]:
        subscription_id = _field(invoice, "subscription")
        if subscription_id is None:
            # Newer API versions nest it under parent.subscription_details
            details = _field(_field(invoice, "parent"), "subscription_details")
            subscription_id = _field(details, "subscription")
        if subscription_id is not None and not isinstance(subscription_id, str):
            subscription_id = _field(subscription_id, "id")
        return subscription_id

    def _handle_payment_succeeded(self, invoice: Any):
        record = self._get_by_stripe_id(self._invoice_subscription_id(invoice))
        if record is None:
            return
        record.status = "active"
        self._set_location_active(record.location_id, True)

    def _handle_payment_failed(self, invoice: Any):
        record = self._get_by_stripe_id(self._invoice_subscription_id(invoice))
        if record is None:
            return
        # Location stays active while Stripe retries the payment
        record.status = "past_due"
        logger.warning(f"Payment failed for subscription {record.stripe_subscription_id}")
