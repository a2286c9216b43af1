"""
Account resolution for checkout

Authenticated buyers order as themselves. Guests are matched to an existing
account by email (case-insensitive), or a customer account is created for
them with a generated password that is mailed after the order commits.

The insert runs inside a SAVEPOINT of the caller's transaction, so a
rejected order also discards the account it created.
"""
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.security import Principal, get_password_hash
from storefront.models.user import User, UserRole

logger = logging.getLogger(__name__)

PASSWORD_SYMBOLS = "!@#$%^&*"
PASSWORD_ALPHABET = string.ascii_letters + string.digits + PASSWORD_SYMBOLS


@dataclass
class AccountResolution:
    user_id: int
    is_new_guest: bool = False
    generated_password: Optional[str] = None


def generate_guest_password(length: Optional[int] = None) -> str:
    """
    Random password drawn from letters, digits and symbols.

    At least one character of each class is guaranteed.
    """
    length = length or settings.GUEST_PASSWORD_LENGTH
    if length < 4:
        raise ValueError("Guest password length must be at least 4")

    required = [
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.digits),
        secrets.choice(PASSWORD_SYMBOLS),
    ]
    rest = [secrets.choice(PASSWORD_ALPHABET) for _ in range(length - len(required))]
    chars = required + rest
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


class AccountService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalars().first()

    async def resolve(
        self,
        principal: Optional[Principal],
        email: str,
        full_name: str,
        phone: Optional[str] = None,
    ) -> AccountResolution:
        """
        Decide which account owns the order.

        Args:
            principal: Verified identity, or None for a guest checkout
            email: Shipping email (used for guests only)
            full_name: Shipping name, becomes the new account's display name
            phone: Shipping phone, stored on a new account
        """
        if principal is not None:
            return AccountResolution(user_id=principal.user_id)

        existing = await self.find_by_email(email)
        if existing:
            # Guest checkout with a known email attaches to that account
            logger.info(f"Guest checkout matched existing account user_id={existing.id}")
            return AccountResolution(user_id=existing.id)

        password = generate_guest_password()
        user = User(
            email=email.strip().lower(),
            hashed_password=get_password_hash(password),
            name=full_name,
            phone=phone,
            role=UserRole.CUSTOMER.value,
            is_active=True,
        )

        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError:
            # Concurrent guest checkout with the same email won the insert
            winner = await self.find_by_email(email)
            if winner is None:
                raise
            logger.info(f"Guest account race resolved to user_id={winner.id}")
            return AccountResolution(user_id=winner.id)

        logger.info(f"Created guest account user_id={user.id}")
        return AccountResolution(user_id=user.id, is_new_guest=True, generated_password=password)
