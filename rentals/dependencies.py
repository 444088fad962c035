"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and the
inquiry engine.

Flow:
  1. OAuth2PasswordBearer extracts the Bearer token from the Authorization header.
  2. decode_access_token validates and parses the JWT.
  3. get_current_user fetches the full User record from the DB, verifying the
     token's sub (user_id) against persisted data.
  4. get_current_actor turns that user into the Actor value every engine
     call receives. The role comes from the database row, not the token.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rentals.core.logging import get_logger
from rentals.core.security import decode_access_token
from rentals.db.session import get_db, get_session_factory
from rentals.models.user import User, UserRole
from rentals.services.actors import Actor
from rentals.services.inquiry_engine import InquiryEngine
from rentals.services.inquiry_store import InquiryStore
from rentals.services.property_service import PropertyDirectory
from rentals.services.user_service import UserService

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Decode the JWT, then load and return the full User from the database.
    Raises 401 if the token is invalid or the user no longer exists.
    """
    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
        if not user_id:
            raise _CREDENTIALS_EXCEPTION
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION

    # Always re-verify against DB so deleted users are rejected
    user = await UserService.get_user(db, user_id)
    if user is None:
        logger.warning("User from valid JWT not found in DB", user_id=user_id)
        raise _CREDENTIALS_EXCEPTION

    return user


async def get_current_actor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Actor:
    return Actor.from_user(current_user)


async def get_current_landlord(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Extends get_current_user with a landlord role check.
    Raises 403 if the authenticated user is not a landlord.
    """
    if current_user.role != UserRole.landlord.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Landlords only.",
        )
    return current_user


def get_inquiry_engine(
    session_factory: Annotated[async_sessionmaker, Depends(get_session_factory)],
) -> InquiryEngine:
    return InquiryEngine(
        store=InquiryStore(session_factory),
        properties=PropertyDirectory(session_factory),
    )
