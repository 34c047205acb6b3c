"""
Profile and admin user management API endpoints
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from app.api.deps import get_current_user, require_admin
from app.database import get_db
from app.models import User
from app.schemas.auth import MessageResponse
from app.schemas.user import (
    UserResponse, UserUpdate, RoleUpdate, UserResults,
    LegacyUserStats, LegacyPasswordReset, LegacyResetResult
)
from app.services.auth_service import auth_service
from app.services.email_service import email_service
from app.services.legacy_service import legacy_service
from app.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the signed-in user's username"""
    return user_service.update_username(db, user, data.username)


@router.get("/", response_model=List[UserResponse])
async def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All users, newest first (admin)"""
    return user_service.list_users(db)


@router.get("/results", response_model=List[UserResults])
async def get_all_results(
    search: Optional[str] = Query(None, description="Match username or email"),
    sort_by: str = Query("name", pattern="^(name|attempts|average)$"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Every user's attempts with their average score (admin)

    - Search by username or email
    - Sort by name, attempts or average
    """
    try:
        return user_service.all_results(db, search, sort_by)

    except Exception as e:
        logger.error(f"Failed to load all results: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to load results")


@router.get("/legacy", response_model=LegacyUserStats)
async def get_legacy_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Users that still have a legacy password (admin)"""
    return legacy_service.stats(db)


@router.post("/legacy/reset", response_model=LegacyResetResult)
async def reset_legacy_passwords(
    data: LegacyPasswordReset,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Reset every legacy password to the given or default password (admin)"""
    try:
        return legacy_service.reset_all(db, data.password)

    except Exception as e:
        logger.error(f"Failed to reset legacy passwords: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to reset legacy user passwords")


@router.delete("/legacy", response_model=LegacyResetResult)
async def clear_legacy_passwords(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Remove every legacy password (admin)"""
    try:
        return legacy_service.clear_all(db)

    except Exception as e:
        logger.error(f"Failed to clear legacy passwords: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to clear legacy passwords")


@router.post("/{user_id}/legacy-password", response_model=LegacyResetResult)
async def reset_user_legacy_password(
    user_id: UUID,
    data: LegacyPasswordReset,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Give one user a legacy password to sign in with (admin)"""
    return legacy_service.reset_one(db, user_id, data.password)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: UUID,
    data: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Promote or demote a user (admin)"""
    return user_service.change_role(db, admin, user_id, data.role)


@router.post("/{user_id}/password-reset", response_model=MessageResponse)
async def send_user_password_reset(
    user_id: UUID,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Email a password reset link to a user (admin)"""
    user = user_service.get_user_or_404(db, user_id)
    _, job = auth_service.request_password_reset(db, user.email)
    if job:
        background_tasks.add_task(email_service.send_password_reset, **job)

    logger.info(f"Admin {admin.username} sent a password reset to {user.email}")
    return MessageResponse(success=True, message=f"Password reset email sent to {user.email}.")
