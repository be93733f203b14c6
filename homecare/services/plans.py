"""
Plan lookups and plan-limit enforcement.
"""
from typing import Optional
from sqlalchemy.orm import Session

from homecare.config import get_settings
from homecare.models.plan import Plan, UserPlan, FREE_PLAN_ID, CORE_PLAN_ID, PREMIUM_PLAN_ID
from homecare.models.property import Property
from homecare.core.exceptions import InvalidInputError, PlanLimitError

PLAN_IDS_BY_SLUG = {
    "free": FREE_PLAN_ID,
    "core": CORE_PLAN_ID,
    "rivopro": PREMIUM_PLAN_ID,
}

PLAN_LABELS = {
    CORE_PLAN_ID: "Core ($7/month)",
    PREMIUM_PLAN_ID: "Premium ($20/month)",
}


def price_for_plan(slug: str) -> str:
    """Stripe price id for a paid plan slug."""
    settings = get_settings()
    prices = {
        "core": settings.STRIPE_PRICE_ID_CORE,
        "rivopro": settings.STRIPE_PRICE_ID_RIVOPRO,
    }
    if slug not in prices:
        raise InvalidInputError(f"Invalid plan: {slug}")
    return prices[slug]


def plan_id_for_price(price_id: Optional[str]) -> int:
    """Map a Stripe price id back to a plan id. Unknown prices fall back to Free."""
    settings = get_settings()
    if price_id and price_id == settings.STRIPE_PRICE_ID_CORE:
        return CORE_PLAN_ID
    if price_id and price_id == settings.STRIPE_PRICE_ID_RIVOPRO:
        return PREMIUM_PLAN_ID
    return FREE_PLAN_ID


def ensure_user_plan(db: Session, user_id: str) -> UserPlan:
    """Return the user's plan row, creating a Free one if missing (not committed)."""
    user_plan = db.get(UserPlan, user_id)
    if user_plan is None:
        user_plan = UserPlan(user_id=user_id, plan_id=FREE_PLAN_ID, subscription_status="free")
        db.add(user_plan)
        db.flush()
    return user_plan


def get_user_plan(db: Session, user_id: str) -> Plan:
    """The user's effective plan; no row means Free."""
    user_plan = db.get(UserPlan, user_id)
    plan_id = user_plan.plan_id if user_plan else FREE_PLAN_ID
    return db.get(Plan, plan_id)


def check_property_limit(db: Session, user_id: str) -> None:
    """Raise PlanLimitError if the user can't add another property."""
    plan = get_user_plan(db, user_id)
    if plan.max_homes is None:
        return

    count = db.query(Property).filter(Property.user_id == user_id).count()
    if count >= plan.max_homes:
        noun = "property" if plan.max_homes == 1 else "properties"
        raise PlanLimitError(
            f"You've reached your plan limit of {plan.max_homes} {noun}. "
            f"Upgrade your plan to add more."
        )
