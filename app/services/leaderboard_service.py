"""
Leaderboard service - best attempt per user, globally and per quiz
"""
import logging
from typing import Dict, Any, List
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models import QuizAttempt
from app.services.quiz_service import quiz_service
from app.services.scoring_service import scoring_service
from app.utils.cache import cache_service, QueryKeys, STALE_TIMES
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)

QUIZ_LEADERBOARD_LIMIT = 10


class LeaderboardService:
    """
    Rankings are by percentage so quizzes of different lengths compare fairly.
    """

    def _best_per_user(self, attempts: List[QuizAttempt], better) -> Dict[Any, QuizAttempt]:
        best: Dict[Any, QuizAttempt] = {}
        for attempt in attempts:
            current = best.get(attempt.user_id)
            if current is None or better(attempt, current):
                best[attempt.user_id] = attempt
        return best

    def _percentage(self, attempt: QuizAttempt) -> int:
        return scoring_service.percentage(attempt.score, attempt.total_questions)

    def get_global(self, db: Session, limit: int = None) -> List[Dict[str, Any]]:
        """
        Each user's best attempt across all quizzes

        Ties on percentage go to the more recent attempt.
        """
        limit = limit or settings.LEADERBOARD_LIMIT

        def load():
            attempts = db.query(QuizAttempt).options(joinedload(QuizAttempt.user)).filter(
                QuizAttempt.completed_at.isnot(None)
            ).all()

            def sort_key(attempt):
                return (self._percentage(attempt), ensure_utc(attempt.completed_at))

            best = self._best_per_user(attempts, lambda a, b: sort_key(a) > sort_key(b))
            ranked = sorted(best.values(), key=sort_key, reverse=True)[:settings.LEADERBOARD_LIMIT]

            return [
                {
                    "rank": rank,
                    "user_id": str(attempt.user_id),
                    "username": attempt.user.username,
                    "score": self._percentage(attempt),
                    "quiz_id": str(attempt.quiz_id),
                    "completed_at": ensure_utc(attempt.completed_at).isoformat(),
                    "total_questions": attempt.total_questions,
                    "time_spent": attempt.time_taken or 0
                }
                for rank, attempt in enumerate(ranked, start=1)
            ]

        entries = cache_service.get_or_set(QueryKeys.LEADERBOARD, STALE_TIMES["leaderboard"], load)
        return entries[:limit]

    def get_for_quiz(self, db: Session, quiz_id: UUID) -> Dict[str, Any]:
        """
        Top ten users on one quiz

        Ties on percentage go to the shorter time taken.
        """
        quiz = quiz_service.get_quiz_or_404(db, quiz_id)

        def load():
            attempts = db.query(QuizAttempt).options(joinedload(QuizAttempt.user)).filter(
                QuizAttempt.quiz_id == quiz.id
            ).all()

            def sort_key(attempt):
                return (-self._percentage(attempt), attempt.time_taken or 0)

            best = self._best_per_user(attempts, lambda a, b: sort_key(a) < sort_key(b))
            ranked = sorted(best.values(), key=sort_key)

            return {
                "quiz_id": str(quiz.id),
                "quiz_title": quiz.title,
                "quiz_category": quiz.category,
                "participants": len(best),
                "entries": [
                    {
                        "rank": rank,
                        "user_id": str(attempt.user_id),
                        "username": attempt.user.username,
                        "score": self._percentage(attempt),
                        "completed_at": ensure_utc(attempt.completed_at).isoformat(),
                        "time_taken": attempt.time_taken or 0
                    }
                    for rank, attempt in enumerate(ranked[:QUIZ_LEADERBOARD_LIMIT], start=1)
                ]
            }

        return cache_service.get_or_set(
            QueryKeys.quiz_leaderboard(quiz.id), STALE_TIMES["leaderboard"], load
        )


# Global instance
leaderboard_service = LeaderboardService()
