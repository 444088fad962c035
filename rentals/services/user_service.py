"""
services/user_service.py
------------------------
Business logic for user registration and authentication.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.core.logging import get_logger
from rentals.core.security import hash_password, verify_password
from rentals.models.user import User, UserRole
from rentals.schemas.user import UserRegister

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def register_user(db: AsyncSession, data: UserRegister) -> User:
        """
        Self-registration as a tenant or landlord.
        Raises ValueError on duplicate email.
        """
        user = User(
            email=data.email.lower(),
            hashed_password=hash_password(data.password),
            full_name=data.full_name.strip(),
            phone=data.phone.strip(),
            role=data.role.value,
            company_name=(
                data.company_name.strip()
                if data.role is UserRole.landlord and data.company_name
                else None
            ),
        )
        db.add(user)
        try:
            await db.commit()
            await db.refresh(user)
            logger.info("User registered", user_id=user.id, role=user.role)
            return user
        except IntegrityError:
            await db.rollback()
            raise ValueError(f"Email '{data.email}' is already registered")

    @staticmethod
    async def authenticate(
        db: AsyncSession, email: str, password: str
    ) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        result = await db.execute(
            select(User).where(User.email == email.lower())
        )
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
