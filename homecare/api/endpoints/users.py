"""
User Endpoints

Self-service profile management and admin user administration.

RBAC:
- /users/me: any authenticated user
- /admin/users: admin only
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.models.plan import UserPlan
from homecare.schemas.user import (
    UserResponse,
    UserUpdate,
    AdminUserUpdate,
    MeResponse,
    UserListResponse
)
from homecare.schemas.plan import PlanResponse
from homecare.api.deps import get_current_user, require_admin
from homecare.core.exceptions import InvalidInputError, NotFoundError, PaymentGatewayError
from homecare.services.plans import get_user_plan
from homecare.services.notifications import record_audit
from homecare.services.stripe_client import StripeClient, StripeError, get_stripe_client
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/admin/users", tags=["admin"])


def _me(db: Session, user: User) -> MeResponse:
    user_plan = db.get(UserPlan, user.id)
    return MeResponse(
        **UserResponse.model_validate(user).model_dump(),
        plan=PlanResponse.model_validate(get_user_plan(db, user.id)),
        subscription_status=user_plan.subscription_status if user_plan else "free",
    )


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current user's profile with their plan."""
    return _me(db, current_user)


@router.patch("/me", response_model=MeResponse)
async def update_me(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    update_data = user_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)

    logger.info(f"User updated own profile: {current_user.id}")

    return _me(db, current_user)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    stripe: Optional[StripeClient] = Depends(get_stripe_client)
):
    """
    Delete the caller's account and everything they own.

    An active Stripe subscription is cancelled first so the user isn't
    billed for an account that no longer exists.
    """
    user_plan = db.get(UserPlan, current_user.id)
    if stripe is not None and user_plan is not None and user_plan.stripe_subscription_id:
        try:
            stripe.cancel_subscription(user_plan.stripe_subscription_id)
        except StripeError as exc:
            logger.error(f"Could not cancel subscription for {current_user.id}: {exc}")
            raise PaymentGatewayError("Could not cancel your subscription; account not deleted") from exc

    user_id = current_user.id
    db.delete(current_user)
    db.commit()

    logger.info(f"Account deleted: {user_id}")
    return None


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@admin_router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users, filtered by role and active status."""
    query = db.query(User)

    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()

    offset = (page - 1) * page_size
    users = query.order_by(User.created_at.desc()).offset(offset).limit(page_size).all()

    return UserListResponse(
        users=users,
        total=total,
        page=page,
        page_size=page_size
    )


@admin_router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: AdminUserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Change a user's role or active flag.

    Admins can't demote or deactivate themselves, so there's always at
    least one admin who can undo a mistake.
    """
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)

    update_data = user_data.model_dump(exclude_unset=True)

    if user.id == current_user.id:
        if update_data.get("role") not in (None, UserRole.ADMIN) or update_data.get("is_active") is False:
            raise InvalidInputError("You cannot demote or deactivate your own account")

    before = {"role": user.role.value, "is_active": user.is_active}
    for field, value in update_data.items():
        setattr(user, field, value)

    record_audit(
        db,
        current_user.id,
        "user.update",
        "user",
        user.id,
        {"before": before, "after": {"role": user.role.value, "is_active": user.is_active}},
    )
    db.commit()
    db.refresh(user)

    logger.info(f"User updated by admin: {user.id} by {current_user.id}")

    return user
