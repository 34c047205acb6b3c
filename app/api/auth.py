"""
Registration, login and password reset API endpoints
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.schemas.auth import (
    RegisterRequest, LoginRequest, TokenResponse,
    PasswordResetRequest, PasswordResetConfirm, MessageResponse
)
from app.services.auth_service import auth_service
from app.services.email_service import email_service

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create an account and sign in

    - Password must be at least 6 characters
    - Email and username must be unique
    """
    try:
        user = auth_service.register(db, data)
        return TokenResponse(**auth_service.issue_token(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to register user: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create account. Please try again.")


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """
    Sign in with email and password

    Accounts that only have a legacy password are migrated on their first
    successful login.
    """
    user, migrated = auth_service.authenticate(db, data.email, data.password)
    logger.info(f"User signed in: {user.username}{' (legacy migration)' if migrated else ''}")

    background_tasks.add_task(auth_service.prefetch, user.id)
    return TokenResponse(**auth_service.issue_token(user, migrated))


@router.post("/password-reset", response_model=MessageResponse)
async def request_password_reset(
    data: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Email a password reset link when the account exists"""
    message, job = auth_service.request_password_reset(db, data.email)
    if job:
        background_tasks.add_task(email_service.send_password_reset, **job)
    return MessageResponse(success=True, message=message)


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(data: PasswordResetConfirm, db: Session = Depends(get_db)):
    """Set a new password using the token from the reset email"""
    try:
        auth_service.confirm_password_reset(db, data.token, data.new_password)
        return MessageResponse(success=True, message="Password reset successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to reset password: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to reset password")
