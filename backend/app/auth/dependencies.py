"""FastAPI dependencies resolving the calling creator.

Authentication happens upstream; the gateway forwards the authenticated
user id in the ``X-User-Id`` header and this service trusts it.
"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.models.user import User

ACTIVE_STATUS = "active"
ADMIN_ROLE = "admin"


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """The user named by the gateway header; 401 when absent or unknown."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    user = await db.get(User, x_user_id, populate_existing=True)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Reject suspended or deleted accounts with 403."""
    if current_user.status != ACTIVE_STATUS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {current_user.status}",
        )
    return current_user


async def admin_required(current_user: User = Depends(get_current_active_user)) -> User:
    """Payout processing and reconciliation are platform operations."""
    if current_user.user_role != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
