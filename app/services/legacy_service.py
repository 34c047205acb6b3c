"""
Maintenance tools for accounts that still sign in with the legacy bcrypt column
"""
import logging
from typing import Dict, Any, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import settings
from app.models import User
from app.services.user_service import user_service
from app.utils.cache import cache_service, QueryKeys
from app.utils.clock import ensure_utc
from app.utils.security import hash_legacy_password

logger = logging.getLogger(__name__)


class LegacyService:
    """Admin operations on the deprecated `users.password` column"""

    def _legacy_users(self, db: Session) -> List[User]:
        return db.query(User).filter(User.password.isnot(None)).order_by(User.created_at).all()

    def _describe(self, users: List[User]) -> List[Dict[str, Any]]:
        return [
            {"id": u.id, "email": u.email, "username": u.username, "created_at": ensure_utc(u.created_at)}
            for u in users
        ]

    def stats(self, db: Session) -> Dict[str, Any]:
        users = self._legacy_users(db)
        if users:
            message = f"{len(users)} user(s) still have legacy passwords."
        else:
            message = "No legacy users found."
        return {"total": len(users), "users": self._describe(users), "message": message}

    def reset_all(self, db: Session, password: Optional[str] = None) -> Dict[str, Any]:
        """Set every legacy hash to the given (or configured default) password"""
        password = password or settings.LEGACY_DEFAULT_PASSWORD
        users = self._legacy_users(db)
        if not users:
            return {"success": True, "message": "No legacy users found to reset.", "updated_count": 0, "users": []}

        hashed = hash_legacy_password(password)
        for user in users:
            user.password = hashed
        db.commit()

        logger.warning(f"Reset legacy passwords for {len(users)} users")
        cache_service.delete(QueryKeys.USERS)

        return {
            "success": True,
            "message": f"Successfully reset passwords for {len(users)} legacy users to the default password.",
            "updated_count": len(users),
            "users": self._describe(users)
        }

    def reset_one(self, db: Session, user_id: UUID, password: Optional[str] = None) -> Dict[str, Any]:
        user = user_service.get_user_or_404(db, user_id)
        user.password = hash_legacy_password(password or settings.LEGACY_DEFAULT_PASSWORD)
        # The legacy credential only applies while no current credential exists
        user.password_hash = None
        db.commit()

        logger.warning(f"Reset legacy password for {user.username}")
        cache_service.invalidate_user(user.id)

        return {
            "success": True,
            "message": "Password reset successfully",
            "updated_count": 1,
            "users": self._describe([user])
        }

    def clear_all(self, db: Session) -> Dict[str, Any]:
        """Remove every legacy hash; affected users must reset their password"""
        cleared = db.query(User).filter(User.password.isnot(None)).update(
            {"password": None}, synchronize_session=False
        )
        db.commit()

        logger.warning(f"Cleared legacy passwords for {cleared} users")
        cache_service.delete(QueryKeys.USERS)

        return {
            "success": True,
            "message": f"Cleared legacy passwords for {cleared} users.",
            "updated_count": cleared,
            "users": []
        }


# Global instance
legacy_service = LegacyService()
