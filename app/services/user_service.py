"""
User profile and admin user management
"""
import logging
from typing import Dict, Any, List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models import QuizAttempt, User
from app.services.scoring_service import scoring_service
from app.utils.cache import cache_service, QueryKeys, STALE_TIMES
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)

RESULT_SORTS = ("name", "attempts", "average")


class UserService:
    """Service for profiles, roles and the all-results view"""

    def get_user_or_404(self, db: Session, user_id: UUID) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def update_username(self, db: Session, user: User, username: str) -> User:
        taken = db.query(User).filter(
            func.lower(User.username) == username.lower(),
            User.id != user.id
        ).first()
        if taken:
            raise HTTPException(status_code=409, detail="Username is already taken")

        user.username = username
        db.commit()
        db.refresh(user)

        logger.info(f"User {user.id} renamed to {username}")
        cache_service.invalidate_user(user.id)
        return user

    def list_users(self, db: Session) -> List[Dict[str, Any]]:
        """All users, newest first"""
        def load():
            users = db.query(User).order_by(User.created_at.desc()).all()
            return [
                {
                    "id": str(u.id),
                    "username": u.username,
                    "email": u.email,
                    "role": u.role,
                    "created_at": ensure_utc(u.created_at).isoformat() if u.created_at else None
                }
                for u in users
            ]

        return cache_service.get_or_set(QueryKeys.USERS, STALE_TIMES["users"], load)

    def change_role(self, db: Session, admin: User, user_id: UUID, role: str) -> User:
        user = self.get_user_or_404(db, user_id)
        if user.id == admin.id and role != "admin":
            raise HTTPException(status_code=400, detail="You cannot remove your own admin role")

        if user.role != role:
            user.role = role
            db.commit()
            db.refresh(user)
            logger.info(f"Role of {user.username} changed to {role} by {admin.username}")
            cache_service.invalidate_user(user.id, role_changed=True)

        return user

    def all_results(
        self,
        db: Session,
        search: Optional[str] = None,
        sort_by: str = "name"
    ) -> List[Dict[str, Any]]:
        """
        Every non-admin user with their attempts

        Average score is total correct over total questions across attempts.
        """
        users = db.query(User).options(
            selectinload(User.attempts).joinedload(QuizAttempt.quiz)
        ).filter(User.role == "user").all()

        if search and search.strip():
            term = search.strip().lower()
            users = [u for u in users if term in u.username.lower() or term in u.email.lower()]

        results = []
        for user in users:
            attempts = sorted(
                user.attempts,
                key=lambda a: ensure_utc(a.completed_at),
                reverse=True
            )
            total_score = sum(a.score for a in attempts)
            total_questions = sum(a.total_questions for a in attempts)

            results.append({
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "created_at": ensure_utc(user.created_at),
                "total_attempts": len(attempts),
                "average_score": scoring_service.percentage(total_score, total_questions),
                "attempts": [
                    {
                        "id": a.id,
                        "quiz_id": a.quiz_id,
                        "quiz_title": a.quiz.title if a.quiz else None,
                        "quiz_category": a.quiz.category if a.quiz else None,
                        "score": a.score,
                        "total_questions": a.total_questions,
                        "percentage": scoring_service.percentage(a.score, a.total_questions),
                        "time_taken": a.time_taken or 0,
                        "completed_at": ensure_utc(a.completed_at)
                    }
                    for a in attempts
                ]
            })

        if sort_by == "attempts":
            results.sort(key=lambda r: r["total_attempts"], reverse=True)
        elif sort_by == "average":
            results.sort(key=lambda r: r["average_score"], reverse=True)
        else:
            results.sort(key=lambda r: r["username"].lower())

        return results


# Global instance
user_service = UserService()
