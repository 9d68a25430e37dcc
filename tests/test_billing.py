"""Tests for per-location Stripe billing"""
import uuid
from datetime import datetime
from types import SimpleNamespace

import pytest
import stripe

from conftest import auth_headers
from review_responder.api.v1.billing import get_billing_service
from review_responder.core.exceptions import NotFoundError
from review_responder.main import app
from review_responder.models import Location, Subscription
from review_responder.services.billing_service import BillingService

PERIOD_START = 1717200000  # 2024-06-01T00:00:00Z
PERIOD_END = 1719792000  # 2024-07-01T00:00:00Z


class Recorder:
    """Stands in for one Stripe resource class, recording calls"""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.result

    def retrieve(self, object_id):
        self.calls.append(object_id)
        return self.result


class WebhookStub:
    def __init__(self, event=None, error=None):
        self.event = event
        self.error = error

    def construct_event(self, payload, signature, secret):
        if self.error is not None:
            raise self.error
        return self.event


def fake_stripe(subscription=None, event=None, webhook_error=None):
    return SimpleNamespace(
        Customer=Recorder({"id": "cus_123"}),
        checkout=SimpleNamespace(Session=Recorder({"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"})),
        billing_portal=SimpleNamespace(Session=Recorder({"url": "https://billing.stripe.test/p/1"})),
        Subscription=Recorder(subscription),
        Webhook=WebhookStub(event, webhook_error),
    )


def stripe_subscription(sub_id="sub_new", status="trialing", metadata=None, nested_period=False, **extra):
    subscription = {
        "id": sub_id,
        "status": status,
        "metadata": metadata or {},
        "trial_end": PERIOD_END,
        "cancel_at_period_end": False,
        "items": {"data": [{"price": {"id": "price_monthly"}}]},
    }
    if nested_period:
        subscription["items"]["data"][0].update(current_period_start=PERIOD_START, current_period_end=PERIOD_END)
    else:
        subscription.update(current_period_start=PERIOD_START, current_period_end=PERIOD_END)
    subscription.update(extra)
    return subscription


def event(event_type, obj):
    return {"type": event_type, "data": {"object": obj}}


def subscription_for(db, location):
    return db.query(Subscription).filter(Subscription.location_id == location.id).one()


def refreshed(db, location):
    return db.query(Location).filter(Location.id == location.id).one()


# ============================================
# Checkout and portal
# ============================================

def test_checkout_creates_customer_once_and_tags_metadata(db, make_user, make_location):
    user = make_user(name="Sam")
    location = make_location(user, title="Bike Shop", subscription_status=None)
    client = fake_stripe()
    service = BillingService(db, stripe_client=client)

    result = service.create_checkout_session(user, location.id, "yearly")
    service.create_checkout_session(user, location.id, "monthly")

    assert result == {"session_id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    assert len(client.Customer.calls) == 1
    assert user.stripe_customer_id == "cus_123"

    call = client.checkout.Session.calls[0]
    expected_metadata = {"user_id": str(user.id), "location_id": str(location.id)}
    assert call["customer"] == "cus_123"
    assert call["mode"] == "subscription"
    assert call["metadata"] == expected_metadata
    assert call["subscription_data"] == {"trial_period_days": 14, "metadata": expected_metadata}
    assert call["line_items"][0]["price_data"]["recurring"] == {"interval": "year"}
    assert call["line_items"][0]["price_data"]["unit_amount"] == 29000


def test_checkout_rejects_subscribed_location(db, make_user, make_location):
    user = make_user()
    location = make_location(user, subscription_status="active")

    with pytest.raises(ValueError):
        BillingService(db, stripe_client=fake_stripe()).create_checkout_session(user, location.id)


def test_checkout_for_someone_elses_location_is_not_found(db, make_user, make_location):
    location = make_location(make_user(), subscription_status=None)

    with pytest.raises(NotFoundError):
        BillingService(db, stripe_client=fake_stripe()).create_checkout_session(make_user(), location.id)


def test_portal_requires_customer(db, make_user):
    user = make_user()
    client = fake_stripe()
    service = BillingService(db, stripe_client=client)

    with pytest.raises(NotFoundError):
        service.create_portal_session(user)

    user.stripe_customer_id = "cus_123"
    db.commit()
    assert service.create_portal_session(user) == {"url": "https://billing.stripe.test/p/1"}
    assert client.billing_portal.Session.calls[0]["customer"] == "cus_123"


# ============================================
# Webhook transitions
# ============================================

def test_checkout_completed_activates_location(db, make_user, make_location):
    user = make_user()
    location = make_location(user, subscription_status=None)
    metadata = {"user_id": str(user.id), "location_id": str(location.id)}
    client = fake_stripe(subscription=stripe_subscription(metadata=metadata))

    handled = BillingService(db, stripe_client=client).handle_event(event(
        "checkout.session.completed",
        {"id": "cs_1", "subscription": "sub_new", "metadata": metadata}
    ))

    assert handled is True
    assert client.Subscription.calls == ["sub_new"]
    record = subscription_for(db, location)
    assert record.status == "trialing"
    assert record.stripe_price_id == "price_monthly"
    assert record.current_period_start == datetime(2024, 6, 1)
    assert record.current_period_end == datetime(2024, 7, 1)
    assert refreshed(db, location).is_active is True


def test_checkout_completed_without_metadata_is_ignored(db, make_user, make_location):
    location = make_location(make_user(), subscription_status=None)
    client = fake_stripe()

    BillingService(db, stripe_client=client).handle_event(event(
        "checkout.session.completed", {"id": "cs_1", "subscription": "sub_new", "metadata": {}}
    ))

    assert client.Subscription.calls == []
    assert refreshed(db, location).is_active is False


def test_subscription_update_reads_period_from_items(db, make_user, make_location):
    user = make_user()
    location = make_location(user, subscription_status=None)
    metadata = {"user_id": str(user.id), "location_id": str(location.id)}

    BillingService(db, stripe_client=fake_stripe()).handle_event(event(
        "customer.subscription.updated",
        stripe_subscription("sub_x", status="active", metadata=metadata, nested_period=True, cancel_at_period_end=True)
    ))

    record = subscription_for(db, location)
    assert record.stripe_subscription_id == "sub_x"
    assert record.current_period_end == datetime(2024, 7, 1)
    assert record.cancel_at_period_end is True
    assert refreshed(db, location).is_active is True


def test_subscription_update_without_metadata_uses_stripe_id(db, make_user, make_location):
    location = make_location(make_user(), subscription_status="active")
    stripe_id = subscription_for(db, location).stripe_subscription_id

    BillingService(db, stripe_client=fake_stripe()).handle_event(event(
        "customer.subscription.updated", stripe_subscription(stripe_id, status="unpaid")
    ))

    assert subscription_for(db, location).status == "unpaid"
    assert refreshed(db, location).is_active is False


def test_subscription_deleted_deactivates_location(db, make_user, make_location):
    location = make_location(make_user(), subscription_status="active")
    stripe_id = subscription_for(db, location).stripe_subscription_id

    BillingService(db, stripe_client=fake_stripe()).handle_event(event(
        "customer.subscription.deleted", {"id": stripe_id}
    ))

    assert subscription_for(db, location).status == "canceled"
    assert refreshed(db, location).is_active is False


def test_payment_failed_marks_past_due_but_keeps_location(db, make_user, make_location):
    location = make_location(make_user(), subscription_status="active")
    stripe_id = subscription_for(db, location).stripe_subscription_id

    BillingService(db, stripe_client=fake_stripe()).handle_event(event(
        "invoice.payment_failed", {"id": "in_1", "subscription": stripe_id}
    ))

    assert subscription_for(db, location).status == "past_due"
    assert refreshed(db, location).is_active is True


def test_payment_succeeded_with_nested_subscription_reactivates(db, make_user, make_location):
    location = make_location(make_user(), subscription_status="past_due")
    stripe_id = subscription_for(db, location).stripe_subscription_id

    BillingService(db, stripe_client=fake_stripe()).handle_event(event(
        "invoice.payment_succeeded",
        {"id": "in_2", "subscription": None, "parent": {"subscription_details": {"subscription": stripe_id}}}
    ))

    assert subscription_for(db, location).status == "active"
    assert refreshed(db, location).is_active is True


def test_unhandled_event_type(db):
    assert BillingService(db, stripe_client=fake_stripe()).handle_event(event("customer.created", {})) is False


# ============================================
# API
# ============================================

@pytest.fixture
def stripe_override():
    def _override(db, client):
        app.dependency_overrides[get_billing_service] = lambda: BillingService(db, stripe_client=client)
    return _override


def test_webhook_requires_signature(client):
    response = client.post("/api/v1/billing/webhook", content=b"{}")

    assert response.status_code == 400
    assert response.json()["detail"] == "No signature"


def test_webhook_rejects_bad_signature(client, db, stripe_override):
    stripe_override(db, fake_stripe(webhook_error=stripe.SignatureVerificationError("bad", "sig")))

    response = client.post("/api/v1/billing/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=x"})

    assert response.status_code == 400


def test_webhook_applies_event(client, db, stripe_override, make_user, make_location):
    location = make_location(make_user(), subscription_status="active")
    stripe_id = subscription_for(db, location).stripe_subscription_id
    stripe_override(db, fake_stripe(event=event("customer.subscription.deleted", {"id": stripe_id})))

    response = client.post("/api/v1/billing/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=x"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "handled": True}
    assert refreshed(db, location).is_active is False


def test_subscriptions_endpoint_lists_own_subscriptions(client, db, stripe_override, make_user, make_location):
    user = make_user()
    location = make_location(user, subscription_status="trialing")
    make_location(make_user(), subscription_status="active")
    stripe_override(db, fake_stripe())

    response = client.get("/api/v1/billing/subscriptions", headers=auth_headers(user))

    assert response.status_code == 200
    subscriptions = response.json()["subscriptions"]
    assert [s["location_id"] for s in subscriptions] == [str(location.id)]
    assert subscriptions[0]["is_active"] is True


def test_checkout_endpoint_unknown_location(client, db, stripe_override, make_user):
    stripe_override(db, fake_stripe())

    response = client.post(
        "/api/v1/billing/checkout",
        json={"location_id": str(uuid.uuid4()), "price_type": "monthly"},
        headers=auth_headers(make_user())
    )

    assert response.status_code == 404
