"""
Credentials and tokens.

Passwords are bcrypt hashes (passlib). Access tokens are HS256 JWTs
(python-jose) carrying the user id as ``sub`` and the role at issue
time. Routes always reload the user, so a stale role claim is harmless.
Scheduled jobs authenticate with a shared secret instead of a token.
"""
import hmac
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from homecare.config import get_settings
from homecare.models.user import User

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _bcrypt_secret(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(_bcrypt_secret(plain_password), hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password. Slow on purpose; keep it out of loops."""
    return pwd_context.hash(_bcrypt_secret(password))


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.utcnow()
    claims = dict(data)
    claims["iat"] = now
    claims["exp"] = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user: User) -> str:
    """Access token for a homeowner, provider or admin."""
    return create_access_token({"sub": user.id, "role": user.role.value})


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad or expired token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def token_subject(token: str) -> Optional[str]:
    """User id from a valid token."""
    claims = decode_access_token(token)
    if not claims:
        return None
    return claims.get("sub") or None


def verify_job_secret(provided: Optional[str]) -> bool:
    """True when a scheduled job presented the configured reminder secret."""
    expected = get_settings().REMINDER_JOB_SECRET
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
