"""
Security utilities - password hashing, JWT tokens

Uses timezone-aware datetime (datetime.now(timezone.utc)) instead of deprecated utcnow()
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from storefront.core.config import settings


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8")
    )


def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt()
    ).decode("utf-8")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    # Ensure sub is always a string for JWT spec compliance
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "type": "access",
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_sub": False}
        )
        return payload
    except JWTError:
        return None


@dataclass(frozen=True)
class Principal:
    """Identity carried by a verified access token. Guests have no principal."""
    user_id: int
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def principal_from_payload(payload: Optional[dict]) -> Optional[Principal]:
    """
    Build a Principal from a decoded token payload.

    Browsing tokens (role "guest" or a "guest_" subject) and anything that
    is not an access token yield None.
    """
    if not payload or payload.get("type") != "access":
        return None
    subject = str(payload.get("sub") or "")
    role = payload.get("role") or "customer"
    if role == "guest" or subject.startswith("guest_"):
        return None
    if not subject.isdigit():
        return None
    return Principal(user_id=int(subject), role=role)
