"""
Subscription billing rules.

Keeps user_plans in step with Stripe: checkout, cancellation, plan
changes, manual sync and webhook events all funnel through
apply_subscription() so the mapping from a Stripe subscription to a
local plan lives in one place.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from homecare.config import get_settings
from homecare.models.plan import UserPlan, ReportDownload, FREE_PLAN_ID
from homecare.models.property import Property
from homecare.models.user import User
from homecare.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    PaymentGatewayError,
    PaymentsNotConfigured,
)
from homecare.services.plans import (
    PLAN_IDS_BY_SLUG,
    PLAN_LABELS,
    ensure_user_plan,
    plan_id_for_price,
    price_for_plan,
)
from homecare.services.stripe_client import StripeClient, StripeError
from homecare.utils.logging import get_logger

logger = get_logger(__name__)


def require_stripe(stripe: Optional[StripeClient]) -> StripeClient:
    if stripe is None:
        raise PaymentsNotConfigured()
    return stripe


def _ts(value: Optional[int]) -> Optional[datetime]:
    return datetime.utcfromtimestamp(value) if value else None


def subscription_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        raise PaymentGatewayError("Subscription has no items")
    return items[0]


def subscription_price_id(subscription: Dict[str, Any]) -> Optional[str]:
    item = subscription_item(subscription)
    return (item.get("price") or {}).get("id")


def subscription_period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    # Newer API versions report the period on the subscription item
    value = subscription.get("current_period_end")
    if value is None:
        value = subscription_item(subscription).get("current_period_end")
    return _ts(value)


def apply_subscription(user_plan: UserPlan, subscription: Dict[str, Any]) -> UserPlan:
    """Copy a Stripe subscription's state onto the local plan row."""
    user_plan.plan_id = plan_id_for_price(subscription_price_id(subscription))
    user_plan.stripe_subscription_id = subscription.get("id")
    user_plan.subscription_status = subscription.get("status") or "active"
    user_plan.current_period_end = subscription_period_end(subscription)
    user_plan.cancel_at_period_end = bool(subscription.get("cancel_at_period_end"))
    if subscription.get("customer"):
        user_plan.stripe_customer_id = subscription["customer"]
    return user_plan


# Stripe statuses after which a subscription no longer bills
ENDED_STATUSES = ("canceled", "incomplete_expired")


def has_live_subscription(user_plan: Optional[UserPlan]) -> bool:
    return bool(
        user_plan is not None
        and user_plan.stripe_subscription_id
        and user_plan.subscription_status not in ENDED_STATUSES
    )


def _call(fn, *args, **kwargs):
    """Run a Stripe call, turning its errors into a 502 for the client."""
    try:
        return fn(*args, **kwargs)
    except StripeError as exc:
        logger.error(f"Stripe call failed: {exc}")
        raise PaymentGatewayError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Customer-facing operations
# ---------------------------------------------------------------------------

def billing_summary(db: Session, user: User, stripe: Optional[StripeClient]) -> Dict[str, Any]:
    user_plan = db.get(UserPlan, user.id)
    summary = {
        "plan_id": user_plan.plan_id if user_plan else FREE_PLAN_ID,
        "plan_name": user_plan.plan.name if user_plan else "Free",
        "subscription_status": user_plan.subscription_status if user_plan else "free",
        "current_period_end": user_plan.current_period_end if user_plan else None,
        "cancel_at_period_end": user_plan.cancel_at_period_end if user_plan else False,
        "upcoming_invoice": None,
        "invoices": [],
    }
    if stripe is None or user_plan is None or not user_plan.stripe_customer_id:
        return summary

    customer_id = user_plan.stripe_customer_id
    upcoming = _call(stripe.preview_upcoming_invoice, customer_id)
    if upcoming:
        summary["upcoming_invoice"] = {
            "amount_due": upcoming.get("amount_due"),
            "currency": upcoming.get("currency"),
            "period_end": _ts(upcoming.get("period_end")),
        }

    summary["invoices"] = [
        {
            "id": invoice.get("id"),
            "number": invoice.get("number"),
            "amount_paid": invoice.get("amount_paid"),
            "currency": invoice.get("currency"),
            "status": invoice.get("status"),
            "created": _ts(invoice.get("created")),
            "hosted_invoice_url": invoice.get("hosted_invoice_url"),
        }
        for invoice in _call(stripe.list_invoices, customer_id, limit=10)
    ]
    return summary


def ensure_customer(db: Session, user: User, user_plan: UserPlan, stripe: StripeClient) -> str:
    """Stripe customer id for the user, creating the customer on first use."""
    if not user_plan.stripe_customer_id:
        customer = _call(stripe.create_customer, user.email, user.full_name, user.id)
        user_plan.stripe_customer_id = customer["id"]
        db.commit()
        logger.info(f"Stripe customer {customer['id']} created for {user.id}")
    return user_plan.stripe_customer_id


def create_checkout(db: Session, user: User, stripe: Optional[StripeClient],
                    plan: str, return_to: str) -> Dict[str, str]:
    """Start a subscription checkout for a paid plan. Returns the session id and URL."""
    stripe = require_stripe(stripe)
    settings = get_settings()
    price_id = price_for_plan(plan)

    user_plan = ensure_user_plan(db, user.id)
    if has_live_subscription(user_plan):
        raise InvalidInputError("You already have an active subscription. Use change-plan to switch plans.")
    ensure_customer(db, user, user_plan, stripe)

    site = settings.SITE_URL.rstrip("/")
    if return_to == "onboarding":
        success_url = f"{site}/onboarding/payment-success?session_id={{CHECKOUT_SESSION_ID}}"
        cancel_url = f"{site}/onboarding?step=2&payment_cancelled=true"
    else:
        success_url = f"{site}/settings/billing/success?session_id={{CHECKOUT_SESSION_ID}}"
        cancel_url = f"{site}/settings/billing"

    session = _call(
        stripe.create_checkout_session,
        user_plan.stripe_customer_id,
        price_id,
        success_url,
        cancel_url,
        {"user_id": user.id, "return_to": return_to, "plan": plan},
    )
    logger.info(f"Checkout session {session.get('id')} created for {user.id} (plan={plan})")
    return {"session_id": session.get("id"), "session_url": session.get("url")}


def _active_user_plan(db: Session, user: User) -> UserPlan:
    user_plan = db.get(UserPlan, user.id)
    if user_plan is None or not user_plan.stripe_subscription_id:
        raise InvalidInputError("No active subscription")
    return user_plan


def cancel_subscription(db: Session, user: User, stripe: Optional[StripeClient]) -> Dict[str, Any]:
    stripe = require_stripe(stripe)
    user_plan = _active_user_plan(db, user)

    subscription = _call(stripe.set_cancel_at_period_end, user_plan.stripe_subscription_id, True)
    user_plan.cancel_at_period_end = True
    user_plan.current_period_end = subscription_period_end(subscription) or user_plan.current_period_end
    db.commit()

    logger.info(f"Subscription {user_plan.stripe_subscription_id} set to cancel at period end for {user.id}")
    return {
        "status": subscription.get("status"),
        "cancel_at_period_end": True,
        "current_period_end": user_plan.current_period_end,
    }


def change_plan(db: Session, user: User, stripe: Optional[StripeClient], target_plan: str) -> Dict[str, Any]:
    """
    Switch between paid plans with proration, or downgrade to Free.

    Downgrading to Free cancels at period end; the webhook moves the user
    back to plan 1 once Stripe deletes the subscription.
    """
    stripe = require_stripe(stripe)
    user_plan = db.get(UserPlan, user.id)

    if user_plan is None or not user_plan.stripe_subscription_id:
        if target_plan == "free":
            return {"message": "You're already on the Free plan", "plan_id": FREE_PLAN_ID}
        raise InvalidInputError("No active subscription. Use checkout to subscribe.")

    if target_plan == "free":
        subscription = _call(stripe.set_cancel_at_period_end, user_plan.stripe_subscription_id, True)
        user_plan.cancel_at_period_end = True
        user_plan.current_period_end = subscription_period_end(subscription) or user_plan.current_period_end
        db.commit()
        logger.info(f"User {user.id} downgrading to Free at period end")
        return {
            "message": "Your subscription will be cancelled at the end of the current billing period",
            "plan_id": user_plan.plan_id,
            "current_period_end": user_plan.current_period_end,
        }

    new_price = price_for_plan(target_plan)
    subscription = _call(stripe.retrieve_subscription, user_plan.stripe_subscription_id)
    item = subscription_item(subscription)
    if (item.get("price") or {}).get("id") == new_price:
        raise InvalidInputError("You're already on this plan")

    updated = _call(stripe.change_subscription_price, subscription["id"], item["id"], new_price)

    new_plan_id = PLAN_IDS_BY_SLUG[target_plan]
    user_plan.plan_id = new_plan_id
    user_plan.cancel_at_period_end = False
    user_plan.subscription_status = updated.get("status") or user_plan.subscription_status
    user_plan.current_period_end = subscription_period_end(updated) or user_plan.current_period_end
    db.commit()

    logger.info(f"User {user.id} switched to plan {new_plan_id}")
    return {
        "message": f"Successfully switched to {PLAN_LABELS[new_plan_id]}",
        "plan_id": new_plan_id,
        "current_period_end": user_plan.current_period_end,
    }


def sync_subscription(db: Session, user: User, stripe: Optional[StripeClient]) -> UserPlan:
    """Pull the customer's active subscription from Stripe into user_plans."""
    stripe = require_stripe(stripe)
    user_plan = db.get(UserPlan, user.id)
    if user_plan is None or not user_plan.stripe_customer_id:
        raise NotFoundError("Stripe customer")

    subscriptions = _call(stripe.list_subscriptions, user_plan.stripe_customer_id, "active", 1)
    if not subscriptions:
        raise NotFoundError("Active subscription")

    apply_subscription(user_plan, subscriptions[0])
    db.commit()
    logger.info(f"Synced subscription for {user.id}: plan={user_plan.plan_id} status={user_plan.subscription_status}")
    return user_plan


# ---------------------------------------------------------------------------
# Webhook events
# ---------------------------------------------------------------------------

def _user_plan_for_customer(db: Session, customer_id: Optional[str]) -> Optional[UserPlan]:
    if not customer_id:
        return None
    return db.query(UserPlan).filter(UserPlan.stripe_customer_id == customer_id).first()


def _on_checkout_completed(db: Session, stripe: StripeClient, session: Dict[str, Any]) -> None:
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")
    if not user_id or db.get(User, user_id) is None:
        logger.warning(f"Checkout session {session.get('id')} has no known user_id")
        return

    if session.get("mode") == "subscription" and session.get("subscription"):
        subscription = stripe.retrieve_subscription(session["subscription"])
        user_plan = ensure_user_plan(db, user_id)
        apply_subscription(user_plan, subscription)
        user_plan.stripe_customer_id = session.get("customer") or user_plan.stripe_customer_id
        logger.info(f"Checkout completed for {user_id}: plan={user_plan.plan_id}")

    elif session.get("mode") == "payment" and metadata.get("report_id"):
        exists = db.query(ReportDownload).filter(
            ReportDownload.stripe_session_id == session.get("id")
        ).first()
        if exists is None:
            prop = db.get(Property, metadata.get("property_id") or "")
            db.add(ReportDownload(
                user_id=user_id,
                property_id=prop.id if prop is not None and prop.user_id == user_id else None,
                report_id=metadata["report_id"],
                stripe_session_id=session.get("id"),
                amount_paid=session.get("amount_total"),
            ))
            logger.info(f"Report {metadata['report_id']} purchased by {user_id}")


def _on_invoice_paid(db: Session, invoice: Dict[str, Any]) -> None:
    user_plan = _user_plan_for_customer(db, invoice.get("customer"))
    if user_plan is None:
        return
    user_plan.subscription_status = "active"
    lines = (invoice.get("lines") or {}).get("data") or []
    if lines:
        period_end = (lines[0].get("period") or {}).get("end")
        user_plan.current_period_end = _ts(period_end) or user_plan.current_period_end


def _on_invoice_failed(db: Session, invoice: Dict[str, Any]) -> None:
    user_plan = _user_plan_for_customer(db, invoice.get("customer"))
    if user_plan is not None:
        user_plan.subscription_status = "past_due"
        logger.warning(f"Payment failed for user {user_plan.user_id}")


def _on_subscription_updated(db: Session, subscription: Dict[str, Any]) -> None:
    user_plan = _user_plan_for_customer(db, subscription.get("customer"))
    if user_plan is not None:
        apply_subscription(user_plan, subscription)


def _on_subscription_deleted(db: Session, subscription: Dict[str, Any]) -> None:
    user_plan = _user_plan_for_customer(db, subscription.get("customer"))
    if user_plan is None:
        return
    user_plan.plan_id = FREE_PLAN_ID
    user_plan.subscription_status = "canceled"
    user_plan.stripe_subscription_id = None
    user_plan.cancel_at_period_end = False
    logger.info(f"Subscription deleted; user {user_plan.user_id} back on Free")


def handle_webhook_event(db: Session, stripe: StripeClient, event: Dict[str, Any]) -> bool:
    """
    Apply a verified webhook event. Returns False for event types we ignore.
    """
    event_type = event.get("type")
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    if event_type == "checkout.session.completed":
        _on_checkout_completed(db, stripe, obj)
    elif event_type == "invoice.payment_succeeded":
        _on_invoice_paid(db, obj)
    elif event_type == "invoice.payment_failed":
        _on_invoice_failed(db, obj)
    elif event_type == "customer.subscription.updated":
        _on_subscription_updated(db, obj)
    elif event_type == "customer.subscription.deleted":
        _on_subscription_deleted(db, obj)
    else:
        logger.debug(f"Ignoring Stripe event {event_type}")
        return False

    db.commit()
    logger.info(f"Processed Stripe event {event_type}", extra={"stripe_event": event.get("id")})
    return True
