"""Billing API endpoints (Stripe)"""
import logging
import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from review_responder.database import get_db
from review_responder.core.dependencies import get_current_user
from review_responder.core.exceptions import NotFoundError
from review_responder.models.user import User
from review_responder.services.billing_service import BillingService
from review_responder.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    PortalResponse,
    SubscriptionListResponse,
    SubscriptionResponse,
    WebhookResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(
    request: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """
    Start a Stripe Checkout for one location

    - **location_id**: Location to subscribe
    - **price_type**: monthly ($29) or yearly ($290), both with a 14 day trial
    """
    try:
        return service.create_checkout_session(current_user, request.location_id, request.price_type)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating checkout session: {str(e)}"
        )


@router.post("/portal", response_model=PortalResponse)
def create_portal(
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """Open the Stripe Customer Portal to manage subscriptions"""
    try:
        return service.create_portal_session(current_user)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating portal session: {str(e)}"
        )


@router.get("/subscriptions", response_model=SubscriptionListResponse)
def list_subscriptions(
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """List the current user's location subscriptions"""
    subscriptions = service.list_subscriptions(current_user.id)
    return SubscriptionListResponse(
        subscriptions=[SubscriptionResponse.model_validate(s) for s in subscriptions]
    )


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: BillingService = Depends(get_billing_service)
):
    """
    Stripe webhook receiver

    Verifies the stripe-signature header, then applies subscription
    lifecycle events to local state.
    """
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No signature")

    payload = await request.body()
    try:
        event = service.construct_event(payload, stripe_signature)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error(f"Webhook signature verification failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {str(e)}")

    try:
        handled = service.handle_event(event)
    except Exception as e:
        logger.error(f"Error processing Stripe webhook: {str(e)}")
        service.db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed"
        )

    return WebhookResponse(received=True, handled=handled)
