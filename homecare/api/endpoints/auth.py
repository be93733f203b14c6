"""
Authentication Endpoints

Registration, login and token refresh.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.schemas.auth import LoginRequest, Token, RegisterRequest
from homecare.schemas.user import UserResponse
from homecare.core.security import verify_password, get_password_hash, create_user_token
from homecare.core.exceptions import AuthenticationError
from homecare.api.deps import get_current_user
from homecare.services.plans import ensure_user_plan
from homecare.utils.logging import log_security_event, get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _issue_token(user: User) -> Token:
    return Token(access_token=create_user_token(user), token_type="bearer")


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token.

    SECURITY: Every failure returns the same message to prevent
    account enumeration; the real reason goes to the security log.
    """
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user:
        log_security_event(
            "failed_login",
            {"reason": "user_not_found", "email": credentials.email},
            logger
        )
        raise AuthenticationError("Invalid credentials")

    if not verify_password(credentials.password, user.hashed_password):
        log_security_event(
            "failed_login",
            {"reason": "invalid_password", "user_id": user.id},
            logger
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        log_security_event(
            "failed_login",
            {"reason": "user_inactive", "user_id": user.id},
            logger
        )
        raise AuthenticationError("User account is inactive")

    user.last_login_at = datetime.utcnow()
    db.commit()

    logger.info(f"Successful login: user={user.id}")

    return _issue_token(user)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    registration: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a homeowner or provider account.

    Homeowners start on the Free plan. Providers still need to finish
    onboarding and be approved before they show up to homeowners.
    """
    email = registration.email.lower()
    existing_user = db.query(User).filter(User.email == email).first()

    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    new_user = User(
        email=email,
        hashed_password=get_password_hash(registration.password),
        full_name=registration.full_name,
        role=UserRole(registration.role),
        is_active=True,
    )

    db.add(new_user)
    db.flush()
    if new_user.role == UserRole.HOMEOWNER:
        ensure_user_plan(db, new_user.id)
    db.commit()
    db.refresh(new_user)

    logger.info(f"New user registered: {new_user.id} ({new_user.role.value})")

    return new_user


@router.post("/refresh", response_model=Token)
async def refresh_token(
    current_user: User = Depends(get_current_user)
):
    """Exchange a still-valid token for a fresh one."""
    return _issue_token(current_user)
