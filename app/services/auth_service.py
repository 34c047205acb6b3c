"""
Account service
Registration, login with legacy migration, password resets and the bootstrap admin
"""
import logging
from typing import Dict, Any, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models import User
from app.schemas.auth import RegisterRequest
from app.schemas.user import UserResponse
from app.services.attempt_service import attempt_service
from app.services.quiz_service import quiz_service
from app.utils.cache import cache_service
from app.utils.security import (
    hash_password, verify_password, create_access_token,
    create_password_reset_token, decode_token, RESET_TOKEN_TYPE
)

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a password reset link has been sent."
RESET_MIGRATED_MESSAGE = (
    "Password reset email sent! We've migrated your legacy account to our new system. "
    "Check your inbox and follow the instructions to set your new password."
)


class AuthService:
    """Service for credentials and sign-in"""

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def register(self, db: Session, data: RegisterRequest) -> User:
        """
        Create a user account with role `user`

        Raises:
            HTTPException: 409 when the email or username is taken
        """
        if self.get_by_email(db, data.email):
            raise HTTPException(status_code=409, detail="An account with this email already exists")
        if db.query(User).filter(func.lower(User.username) == data.username.lower()).first():
            raise HTTPException(status_code=409, detail="Username is already taken")

        user = User(
            username=data.username,
            email=data.email.strip().lower(),
            role="user",
            password_hash=hash_password(data.password)
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"User registered: {user.username} ({user.id})")
        cache_service.invalidate_user(user.id)
        return user

    def authenticate(self, db: Session, email: str, password: str) -> Tuple[User, bool]:
        """
        Verify credentials, migrating legacy accounts on first login

        Returns:
            Tuple of (user, migrated_legacy_user)

        Raises:
            HTTPException: 401 on wrong credentials
        """
        user = self.get_by_email(db, email)
        if not user:
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if user.password_hash:
            if not verify_password(password, user.password_hash):
                raise HTTPException(status_code=401, detail="Invalid email or password")
            return user, False

        if user.password and verify_password(password, user.password):
            user.password_hash = hash_password(password)
            user.password = None
            db.commit()
            db.refresh(user)
            logger.info(f"Migrated legacy user on login: {user.username}")
            cache_service.invalidate_user(user.id)
            return user, True

        raise HTTPException(status_code=401, detail="Invalid email or password")

    def issue_token(self, user: User, migrated: bool = False) -> Dict[str, Any]:
        return {
            "access_token": create_access_token(str(user.id), user.role),
            "token_type": "bearer",
            "user": UserResponse.model_validate(user),
            "migrated_legacy_user": migrated
        }

    def request_password_reset(self, db: Session, email: str) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Issue a reset token for a known email

        Returns:
            Tuple of (response message, email job kwargs or None); unknown
            emails get the same message as regular accounts
        """
        user = self.get_by_email(db, email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return RESET_REQUESTED_MESSAGE, None

        migrated = user.is_legacy
        if migrated:
            logger.info(f"Password reset for legacy user {user.username}; account will migrate on confirm")

        job = {
            "email": user.email,
            "username": user.username,
            "token": create_password_reset_token(str(user.id)),
            "migrated": migrated
        }
        return (RESET_MIGRATED_MESSAGE if migrated else RESET_REQUESTED_MESSAGE), job

    def confirm_password_reset(self, db: Session, token: str, new_password: str) -> User:
        payload = decode_token(token, RESET_TOKEN_TYPE)
        if not payload:
            raise HTTPException(status_code=400, detail="Reset link is invalid or has expired")

        user = db.query(User).filter(User.id == UUID(payload["sub"])).first()
        if not user:
            raise HTTPException(status_code=400, detail="Reset link is invalid or has expired")

        user.password_hash = hash_password(new_password)
        user.password = None
        db.commit()
        db.refresh(user)

        logger.info(f"Password reset completed for {user.username}")
        return user

    def seed_admin(self, db: Session) -> Optional[User]:
        """Create the configured bootstrap admin if it does not exist yet"""
        if not (settings.ADMIN_EMAIL and settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD):
            logger.info("No bootstrap admin configured")
            return None

        existing = self.get_by_email(db, settings.ADMIN_EMAIL)
        if existing:
            if existing.role != "admin":
                existing.role = "admin"
                db.commit()
                logger.info(f"Promoted bootstrap admin: {existing.username}")
            else:
                logger.info(f"Admin user already exists: {existing.username}")
            return existing

        admin = User(
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL.strip().lower(),
            role="admin",
            password_hash=hash_password(settings.ADMIN_PASSWORD)
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)

        logger.info(f"Created bootstrap admin: {admin.username}")
        return admin

    def prefetch(self, user_id: UUID) -> None:
        """Warm the caches a freshly signed-in user reads first"""
        if not cache_service.enabled:
            return

        db = SessionLocal()
        try:
            user = db.query(User).filter(User.id == user_id).first()
            if user:
                attempt_service.user_attempts(db, user.id)
                quiz_service.list_quizzes(db, user)
                logger.debug(f"Prefetched dashboard data for {user.username}")
        except Exception as e:
            logger.warning(f"Prefetch failed for {user_id}: {str(e)}")
        finally:
            db.close()


# Global instance
auth_service = AuthService()
