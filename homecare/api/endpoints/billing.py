"""
Billing Endpoints

Subscription management against Stripe plus the Stripe webhook.
Routes that need Stripe answer 503 until the secret key and both price
ids are configured.
"""
import json
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User
from homecare.schemas.plan import (
    BillingSummary,
    CheckoutRequest,
    CheckoutResponse,
    CancelResponse,
    ChangePlanRequest,
    ChangePlanResponse,
    UserPlanResponse,
)
from homecare.api.deps import require_homeowner
from homecare.core.exceptions import InvalidInputError, PaymentGatewayError
from homecare.config import get_settings
from homecare.services import billing
from homecare.services.stripe_client import (
    StripeClient,
    StripeError,
    SignatureVerificationError,
    get_stripe_client,
    verify_webhook_signature,
)
from homecare.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])
webhook_router = APIRouter(prefix="/stripe", tags=["billing"])


@router.get("", response_model=BillingSummary)
async def get_billing(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """
    Plan, subscription status, upcoming invoice and the last 10 invoices.

    Without Stripe configured (or before the first checkout) only the
    local plan data is returned.
    """
    return billing.billing_summary(db, current_user, stripe)


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    payload: CheckoutRequest,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    result = billing.create_checkout(db, current_user, stripe, payload.plan, payload.return_to)
    db.commit()
    return result


@router.post("/cancel", response_model=CancelResponse)
async def cancel(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """Cancel at the end of the current billing period."""
    return billing.cancel_subscription(db, current_user, stripe)


@router.post("/change-plan", response_model=ChangePlanResponse)
async def change_plan(
    payload: ChangePlanRequest,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """Switch between Core and Premium (prorated) or downgrade to Free at period end."""
    return billing.change_plan(db, current_user, stripe, payload.target_plan)


@router.post("/sync", response_model=UserPlanResponse)
async def sync(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """Re-read the active subscription from Stripe (for missed webhooks)."""
    return billing.sync_subscription(db, current_user, stripe)


@webhook_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """
    Stripe webhook receiver.

    SECURITY: The raw body is verified against STRIPE_WEBHOOK_SECRET
    before anything is parsed.
    """
    settings = get_settings()
    if stripe is None or not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("Stripe webhook received but billing is not configured")
        return {"received": True}

    payload = await request.body()
    try:
        verify_webhook_signature(
            payload,
            request.headers.get("stripe-signature"),
            settings.STRIPE_WEBHOOK_SECRET,
            tolerance=settings.STRIPE_WEBHOOK_TOLERANCE,
        )
    except SignatureVerificationError as exc:
        log_security_event(
            "invalid_webhook_signature",
            {"reason": str(exc), "client": request.client.host if request.client else None},
            logger
        )
        raise InvalidInputError(f"Webhook Error: {exc}")

    try:
        event = json.loads(payload)
    except ValueError:
        raise InvalidInputError("Webhook Error: invalid JSON payload")
    if not isinstance(event, dict):
        raise InvalidInputError("Webhook Error: event must be a JSON object")

    try:
        billing.handle_webhook_event(db, stripe, event)
    except StripeError as exc:
        db.rollback()
        logger.error(f"Stripe error handling {event.get('type')}: {exc}")
        # Non-2xx makes Stripe retry the delivery
        raise PaymentGatewayError("Webhook handler failed")

    return {"received": True}
