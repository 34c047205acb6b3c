"""
Attempt history queries
"""
import logging
from typing import Dict, Any, List
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models import QuizAttempt, User
from app.schemas.attempt import AttemptResponse
from app.services.scoring_service import scoring_service
from app.utils.cache import cache_service, QueryKeys, STALE_TIMES

logger = logging.getLogger(__name__)


class AttemptService:
    """Read side of quiz attempts; attempts are only written by finishing a session"""

    def get_attempt(self, db: Session, attempt_id: UUID, user: User) -> QuizAttempt:
        """
        Load an attempt visible to user

        Raises:
            HTTPException: 404 unknown attempt, 403 another user's attempt
        """
        attempt = db.query(QuizAttempt).filter(QuizAttempt.id == attempt_id).first()
        if not attempt:
            raise HTTPException(status_code=404, detail="Attempt not found")
        if attempt.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="Access denied")
        return attempt

    def _serialize(self, attempts: List[QuizAttempt]) -> List[Dict[str, Any]]:
        return [
            AttemptResponse(**scoring_service.attempt_to_dict(attempt)).model_dump(mode="json")
            for attempt in attempts
        ]

    def _cached(self, key: str, ttl: int, loader) -> List[AttemptResponse]:
        return [AttemptResponse.model_validate(item) for item in cache_service.get_or_set(key, ttl, loader)]

    def user_attempts(self, db: Session, user_id: UUID) -> List[AttemptResponse]:
        """All of a user's attempts, newest first, with quiz title and category"""
        def load():
            attempts = db.query(QuizAttempt).options(
                joinedload(QuizAttempt.quiz), joinedload(QuizAttempt.user)
            ).filter(QuizAttempt.user_id == user_id).order_by(QuizAttempt.completed_at.desc()).all()
            return self._serialize(attempts)

        return self._cached(QueryKeys.user_attempts(user_id), STALE_TIMES["user_attempts"], load)

    def user_quiz_attempts(self, db: Session, user_id: UUID, quiz_id: UUID) -> List[AttemptResponse]:
        def load():
            attempts = db.query(QuizAttempt).options(
                joinedload(QuizAttempt.quiz), joinedload(QuizAttempt.user)
            ).filter(
                QuizAttempt.user_id == user_id,
                QuizAttempt.quiz_id == quiz_id
            ).order_by(QuizAttempt.completed_at.desc()).all()
            return self._serialize(attempts)

        return self._cached(
            QueryKeys.user_quiz_attempts(user_id, quiz_id), STALE_TIMES["user_attempts"], load
        )

    def quiz_results(self, db: Session, quiz_id: UUID) -> List[AttemptResponse]:
        """Best-scoring attempts on a quiz, for admins"""
        def load():
            attempts = db.query(QuizAttempt).options(
                joinedload(QuizAttempt.quiz), joinedload(QuizAttempt.user)
            ).filter(QuizAttempt.quiz_id == quiz_id).order_by(
                QuizAttempt.score.desc(), QuizAttempt.completed_at.desc()
            ).limit(settings.QUIZ_RESULTS_LIMIT).all()
            return self._serialize(attempts)

        return self._cached(QueryKeys.quiz_results(quiz_id), STALE_TIMES["quiz_results"], load)


# Global instance
attempt_service = AttemptService()
