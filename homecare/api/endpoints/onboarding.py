"""
Homeowner Onboarding Wizard

Resumable, one step at a time:

    1 welcome, 2 plan, 3 property, 4 region, 5 tasks, 6 upsell, 7 finish

Every step endpoint checks the wizard is on that step, so replays and
out-of-order calls get a 409 with the current step instead of
corrupting state.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.plan import UserPlan, FREE_PLAN_ID
from homecare.models.property import Property
from homecare.schemas.onboarding import (
    OnboardingState,
    PlanChoice,
    OnboardingProperty,
    RegionConfirmation,
    OnboardingFinish,
)
from homecare.api.deps import require_homeowner
from homecare.api.endpoints.properties import create_property_for
from homecare.core.exceptions import ConflictError, NotFoundError
from homecare.services import onboarding as wizard
from homecare.services.billing import create_checkout, has_live_subscription
from homecare.services.plans import PLAN_IDS_BY_SLUG, ensure_user_plan, get_user_plan
from homecare.services.regions import infer_region
from homecare.services.stripe_client import StripeClient, get_stripe_client
from homecare.services.tasks import seed_tasks_for_property
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def _state(state, checkout_url: Optional[str] = None) -> OnboardingState:
    response = OnboardingState.model_validate(state)
    response.checkout_url = checkout_url
    return response


def _load(db: Session, user: User, step: int):
    state = wizard.get_or_create_user_onboarding(db, user.id)
    wizard.require_step(state, step)
    return state


@router.get("", response_model=OnboardingState)
async def get_onboarding(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Current wizard state; starts a new wizard at step 1 if none exists."""
    return _state(wizard.get_or_create_user_onboarding(db, current_user.id))


@router.post("/welcome", response_model=OnboardingState)
async def welcome(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    state = _load(db, current_user, wizard.WELCOME_STEP)
    wizard.advance(state, wizard.PLAN_STEP)
    db.commit()
    return _state(state)


@router.post("/plan", response_model=OnboardingState)
async def choose_plan(
    choice: PlanChoice,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """
    Step 2: pick a plan.

    Free moves straight on. Paid plans return a Stripe checkout URL and
    stay on this step until /payment-success confirms the subscription.
    Someone who already pays (e.g. after going back) can only keep their
    current plan here; switching goes through billing change-plan.
    """
    state = _load(db, current_user, wizard.PLAN_STEP)

    user_plan = db.get(UserPlan, current_user.id)
    if has_live_subscription(user_plan):
        if PLAN_IDS_BY_SLUG[choice.plan] != user_plan.plan_id:
            raise ConflictError("You already have an active subscription. Change plans from billing settings.")
        state.plan_id = user_plan.plan_id
        wizard.advance(state, wizard.PROPERTY_STEP)
        db.commit()
        return _state(state)

    if choice.plan == "free":
        user_plan = ensure_user_plan(db, current_user.id)
        user_plan.plan_id = FREE_PLAN_ID
        state.plan_id = FREE_PLAN_ID
        wizard.advance(state, wizard.PROPERTY_STEP)
        db.commit()
        logger.info(f"Onboarding: {current_user.id} chose Free")
        return _state(state)

    checkout = create_checkout(db, current_user, stripe, choice.plan, return_to="onboarding")
    db.commit()
    logger.info(f"Onboarding: {current_user.id} sent to checkout for {choice.plan}")
    return _state(state, checkout_url=checkout["session_url"])


@router.post("/payment-success", response_model=OnboardingState)
async def payment_success(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Return point from Stripe checkout.

    The webhook updates user_plans; until it has, the client should retry.
    """
    state = _load(db, current_user, wizard.PLAN_STEP)

    user_plan = db.get(UserPlan, current_user.id)
    if not user_plan or user_plan.subscription_status != "active" or not user_plan.stripe_subscription_id:
        raise ConflictError("Payment is still being processed")

    state.plan_id = user_plan.plan_id
    wizard.advance(state, wizard.PROPERTY_STEP)
    db.commit()

    logger.info(f"Onboarding: payment confirmed for {current_user.id} (plan={user_plan.plan_id})")
    return _state(state)


@router.post("/property", response_model=OnboardingState)
async def add_property(
    payload: OnboardingProperty,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Step 3: first property. Region is inferred from the address.

    After going back to this step the wizard's property is updated in
    place instead of adding a second one.
    """
    state = _load(db, current_user, wizard.PROPERTY_STEP)

    prop = db.get(Property, state.property_id) if state.property_id else None
    if prop is not None:
        prop.address = payload.address
        prop.nickname = payload.address
        prop.property_type = payload.property_type
        prop.year_built = payload.year_built
        prop.region = infer_region(payload.address)
    else:
        prop = create_property_for(
            db,
            current_user,
            payload.address,
            payload.property_type,
            year_built=payload.year_built,
        )
        state.property_id = prop.id
    wizard.advance(state, wizard.REGION_STEP)
    db.commit()

    logger.info(f"Onboarding: property {prop.id} added for {current_user.id} (region={prop.region})")
    return _state(state)


def _wizard_property(db: Session, state) -> Property:
    prop = db.get(Property, state.property_id) if state.property_id else None
    if prop is None:
        # Property was deleted mid-wizard; send the user back to re-add it
        state.current_step = wizard.PROPERTY_STEP
        db.commit()
        raise NotFoundError("Onboarding property")
    return prop


@router.post("/region", response_model=OnboardingState)
async def confirm_region(
    payload: RegionConfirmation,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Step 4: confirm or correct the inferred region."""
    state = _load(db, current_user, wizard.REGION_STEP)
    prop = _wizard_property(db, state)

    if payload.region and payload.region != prop.region:
        logger.info(f"Onboarding: region corrected {prop.region} -> {payload.region} for {prop.id}")
        prop.region = payload.region

    wizard.advance(state, wizard.TASKS_STEP)
    db.commit()
    return _state(state)


@router.post("/tasks", response_model=OnboardingState)
async def seed_tasks(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Step 5: seed the maintenance plan. Premium users skip the upsell."""
    state = _load(db, current_user, wizard.TASKS_STEP)
    prop = _wizard_property(db, state)
    plan = get_user_plan(db, current_user.id)

    seed_tasks_for_property(db, current_user.id, prop, plan)
    wizard.advance(state, wizard.step_after_tasks(plan.slug))
    db.commit()
    return _state(state)


@router.post("/upsell", response_model=OnboardingState)
async def upsell(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Step 6: upgrade pitch. Upgrading happens through /billing; this just moves on."""
    state = _load(db, current_user, wizard.UPSELL_STEP)
    wizard.advance(state, wizard.FINISH_STEP)
    db.commit()
    return _state(state)


@router.post("/complete", response_model=OnboardingState)
async def complete(
    payload: OnboardingFinish,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    state = _load(db, current_user, wizard.FINISH_STEP)
    state.newsletter_opt_in = payload.newsletter_opt_in
    wizard.advance(state, wizard.DONE_STEP)
    db.commit()

    logger.info(f"Onboarding completed: {current_user.id}")
    return _state(state)


@router.post("/back", response_model=OnboardingState)
async def back(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    state = wizard.get_or_create_user_onboarding(db, current_user.id)
    wizard.go_back(state)
    db.commit()
    return _state(state)
