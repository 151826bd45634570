# backend/fitsaga/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The JWT only carries the user id; the role is always read from the users
table so a demoted admin loses access immediately.
"""

import asyncio
import logging
from typing import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...core.enums import RoleName
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = await asyncio.to_thread(RepositoryFactory.create_user_repository(db).get_active, user_id)
    if user is None:
        logger.warning("Token subject %s has no active user", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(role: RoleName, detail: str) -> Callable[..., User]:
    """Dependency factory rejecting callers without ``role``."""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return _checker  # type: ignore[return-value]


def ensure_owner_or_admin(current_user: User, user_id: str) -> None:
    if current_user.id != user_id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own credits",
        )


require_admin = require_role(RoleName.ADMIN, "Only admins can manage credits")
