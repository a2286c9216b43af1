"""
API dependencies

Bearer-token authentication. Browsing tokens issued to guests (role "guest")
carry no account: checkout treats them as anonymous, and every endpoint that
needs a user rejects them.
"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from storefront.core.database import get_db
from storefront.core.security import Principal, decode_token, principal_from_payload
from storefront.models.user import User

# Optional bearer - doesn't fail if no Authorization header
security = HTTPBearer(auto_error=False)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Principal]:
    """Identity from the token subject, or None for anonymous/guest callers. No DB lookup."""
    if not credentials or not credentials.credentials:
        return None
    return principal_from_payload(decode_token(credentials.credentials))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated (non-guest) user."""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    principal = principal_from_payload(payload)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue"
        )

    result = await db.execute(select(User).where(User.id == principal.user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled"
        )

    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Require admin user"""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
