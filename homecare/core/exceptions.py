"""
Custom Exceptions

Centralized exception definitions for better error handling.
FastAPI converts these to HTTP responses; main.py adds a "type" field.
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Raised when an entity cannot be found (or isn't visible to the caller)."""

    def __init__(self, entity: str = "Resource", entity_id: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity} not found: {entity_id}" if entity_id else f"{entity} not found"
        )


class AuthenticationError(HTTPException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(HTTPException):
    """Raised when the caller's role doesn't allow the action."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class PlanLimitError(HTTPException):
    """Raised when an action would exceed the user's subscription plan."""

    def __init__(self, detail: str = "Plan limit reached"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class InvalidInputError(HTTPException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class ConflictError(HTTPException):
    """Raised when the request conflicts with current state."""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class PaymentsNotConfigured(HTTPException):
    """Raised by billing routes when Stripe keys/prices are missing."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment processing is not configured yet"
        )


class PaymentGatewayError(HTTPException):
    """Raised when Stripe returns an error or can't be reached."""

    def __init__(self, detail: str = "Payment provider error"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail
        )


class RateLimitExceeded(HTTPException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(retry_after)}
        )
