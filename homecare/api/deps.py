"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.models.provider import ProviderProfile
from homecare.core.security import token_subject
from homecare.core.exceptions import AuthenticationError, NotFoundError, PermissionDenied
from homecare.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# auto_error=False so a missing header gives our 401 rather than FastAPI's 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user.

    1. Validates the JWT
    2. Loads the user from the database
    3. Checks the account is active
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    user_id = token_subject(credentials.credentials)
    if not user_id:
        raise AuthenticationError("Invalid or expired token")

    user = db.get(User, user_id)
    if not user:
        logger.warning(f"Token for unknown user: {user_id}")
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    request.state.user_id = user.id
    return user


def _role_guard(*roles: UserRole):
    async def dependency(
        request: Request,
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role not in roles:
            log_security_event(
                "privilege_violation",
                {"user_id": current_user.id, "role": current_user.role.value, "path": request.url.path},
                logger
            )
            allowed = " or ".join(role.value for role in roles)
            raise PermissionDenied(f"{allowed.capitalize()} privileges required")
        return current_user
    return dependency


require_admin = _role_guard(UserRole.ADMIN)
require_homeowner = _role_guard(UserRole.HOMEOWNER)
require_provider = _role_guard(UserRole.PROVIDER)


async def get_provider_profile(
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
) -> ProviderProfile:
    """The calling provider's profile; 404 until basic info has been submitted."""
    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == current_user.id).first()
    if not profile:
        raise NotFoundError("Provider profile")
    return profile


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Get current user if authenticated, None otherwise.

    For endpoints that work anonymously but behave differently when
    a user is known.
    """
    if credentials is None:
        return None

    user_id = token_subject(credentials.credentials)
    if not user_id:
        return None

    user = db.get(User, user_id)
    return user if user and user.is_active else None
