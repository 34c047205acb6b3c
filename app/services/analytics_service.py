"""
Analytics service for platform and user performance tracking
"""
import logging
from collections import OrderedDict, defaultdict
from datetime import timedelta
from typing import Dict, List, Any
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload

from app.models import Quiz, QuizAttempt, User
from app.services.scoring_service import scoring_service, DEFAULT_CATEGORY
from app.utils.cache import cache_service, QueryKeys, STALE_TIMES
from app.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}
ENGAGEMENT_DAYS = 14
POPULAR_QUIZ_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10
TREND_WINDOW = 3
TREND_MARGIN = 5


class AnalyticsService:
    """Service for generating performance analytics"""

    def get_admin_analytics(self, db: Session, time_range: str = "30d") -> Dict[str, Any]:
        """
        Aggregate platform analytics for admins

        Args:
            db: Database session
            time_range: One of 7d, 30d, 90d

        Returns:
            Dictionary matching AdminAnalytics
        """
        if time_range not in TIME_RANGES:
            raise HTTPException(status_code=400, detail=f"time_range must be one of {', '.join(TIME_RANGES)}")

        return cache_service.get_or_set(
            QueryKeys.analytics(time_range),
            STALE_TIMES["analytics"],
            lambda: self._compute_admin_analytics(db, time_range)
        )

    def _compute_admin_analytics(self, db: Session, time_range: str) -> Dict[str, Any]:
        since = utcnow() - timedelta(days=TIME_RANGES[time_range])

        quizzes = db.query(Quiz).order_by(Quiz.created_at).all()
        users = db.query(User).filter(User.role != "admin").order_by(User.created_at).all()
        attempts = db.query(QuizAttempt).options(joinedload(QuizAttempt.quiz)).filter(
            QuizAttempt.completed_at >= since
        ).order_by(QuizAttempt.completed_at).all()

        total_score = sum(a.score for a in attempts)
        total_questions = sum(a.total_questions for a in attempts)

        analytics = {
            "time_range": time_range,
            "total_quizzes": len(quizzes),
            "total_users": len(users),
            "total_attempts": len(attempts),
            "average_score": scoring_service.percentage(total_score, total_questions),
            "popular_quizzes": self._popular_quizzes(attempts),
            "user_engagement": self._user_engagement(attempts),
            "category_performance": self._category_attempts(attempts),
            "recent_activity": self._recent_activity(quizzes, attempts, users)
        }

        logger.info(f"Computed admin analytics for {time_range}: {len(attempts)} attempts")
        return analytics

    def _popular_quizzes(self, attempts: List[QuizAttempt]) -> List[Dict[str, Any]]:
        stats: Dict[Any, Dict[str, Any]] = {}
        for attempt in attempts:
            entry = stats.setdefault(attempt.quiz_id, {
                "id": str(attempt.quiz_id),
                "title": attempt.quiz.title if attempt.quiz else "Deleted quiz",
                "attempts": 0,
                "score": 0,
                "questions": 0
            })
            entry["attempts"] += 1
            entry["score"] += attempt.score
            entry["questions"] += attempt.total_questions

        ranked = sorted(stats.values(), key=lambda e: e["attempts"], reverse=True)[:POPULAR_QUIZ_LIMIT]
        return [
            {
                "id": e["id"],
                "title": e["title"],
                "attempts": e["attempts"],
                "average_score": scoring_service.percentage(e["score"], e["questions"])
            }
            for e in ranked
        ]

    def _user_engagement(self, attempts: List[QuizAttempt]) -> List[Dict[str, Any]]:
        days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for attempt in attempts:
            date = ensure_utc(attempt.completed_at).date().isoformat()
            day = days.setdefault(date, {"attempts": 0, "users": set()})
            day["attempts"] += 1
            day["users"].add(str(attempt.user_id))

        engagement = [
            {"date": date, "attempts": day["attempts"], "users": len(day["users"])}
            for date, day in sorted(days.items())
        ]
        return engagement[-ENGAGEMENT_DAYS:]

    def _category_attempts(self, attempts: List[QuizAttempt]) -> List[Dict[str, Any]]:
        stats: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
        for attempt in attempts:
            category = attempt.quiz.category if attempt.quiz else DEFAULT_CATEGORY
            entry = stats.setdefault(category, {"attempts": 0, "score": 0, "questions": 0})
            entry["attempts"] += 1
            entry["score"] += attempt.score
            entry["questions"] += attempt.total_questions

        return [
            {
                "category": category,
                "attempts": entry["attempts"],
                "average_score": scoring_service.percentage(entry["score"], entry["questions"])
            }
            for category, entry in stats.items()
        ]

    def _recent_activity(
        self,
        quizzes: List[Quiz],
        attempts: List[QuizAttempt],
        users: List[User]
    ) -> List[Dict[str, Any]]:
        activity = []
        for quiz in quizzes[-5:]:
            activity.append({
                "id": str(quiz.id),
                "type": "quiz_created",
                "description": f'Quiz "{quiz.title}" was created',
                "timestamp": ensure_utc(quiz.created_at).isoformat()
            })
        for attempt in attempts[-5:]:
            title = attempt.quiz.title if attempt.quiz else "a deleted quiz"
            activity.append({
                "id": str(attempt.id),
                "type": "quiz_attempted",
                "description": (
                    f'Quiz "{title}" was attempted '
                    f"({scoring_service.percentage(attempt.score, attempt.total_questions)}%)"
                ),
                "timestamp": ensure_utc(attempt.completed_at).isoformat()
            })
        for user in users[-3:]:
            activity.append({
                "id": str(user.id),
                "type": "user_registered",
                "description": f"{user.username} joined",
                "timestamp": ensure_utc(user.created_at).isoformat()
            })

        activity.sort(key=lambda item: item["timestamp"], reverse=True)
        return activity[:RECENT_ACTIVITY_LIMIT]

    def get_user_progress(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        """
        Dashboard summary for a user

        Strong and weak categories come from every answer the user gave.
        """
        attempts = db.query(QuizAttempt).options(joinedload(QuizAttempt.quiz)).filter(
            QuizAttempt.user_id == user_id
        ).order_by(QuizAttempt.completed_at.desc()).all()

        total_score = sum(a.score for a in attempts)
        total_questions = sum(a.total_questions for a in attempts)

        answers = []
        for attempt in attempts:
            answers.extend(
                a for a in scoring_service.parse_answers(attempt.answers) if a.get("selected_answer") is not None
            )
        levels = scoring_service.split_levels(scoring_service.category_performance(answers))

        return {
            "total_attempts": len(attempts),
            "total_quizzes": len({a.quiz_id for a in attempts}),
            "average_score": scoring_service.percentage(total_score, total_questions),
            "strong_categories": levels["strong"],
            "weak_categories": levels["weak"],
            "recent_attempts": [scoring_service.attempt_to_dict(a) for a in attempts[:5]]
        }

    def get_performance_analysis(self, db: Session, user_id: UUID) -> Dict[str, Any]:
        """
        Per-category performance across a user's attempts

        Each attempt counts with its percentage under its quiz's category.
        The trend compares the mean of the three most recent attempts with
        the three before them once a category has six attempts.
        """
        attempts = db.query(QuizAttempt).options(joinedload(QuizAttempt.quiz)).filter(
            QuizAttempt.user_id == user_id
        ).order_by(QuizAttempt.completed_at.desc()).all()

        by_category: Dict[str, List[int]] = defaultdict(list)
        for attempt in attempts:
            category = attempt.quiz.category if attempt.quiz else DEFAULT_CATEGORY
            by_category[category].append(scoring_service.percentage(attempt.score, attempt.total_questions))

        performance = []
        for category, scores in by_category.items():
            average = sum(scores) / len(scores)
            performance.append({
                "category": category,
                "average_score": round(average, 1),
                "total_attempts": len(scores),
                "best_score": max(scores),
                "recent_trend": self._trend(scores),
                "level": scoring_service.category_level(average)
            })

        performance.sort(key=lambda item: item["average_score"], reverse=True)

        overall = sum(item["average_score"] for item in performance) / len(performance) if performance else 0.0

        return {
            "category_performance": performance,
            "strong_areas": [p["category"] for p in performance if p["level"] == "strong"],
            "moderate_areas": [p["category"] for p in performance if p["level"] == "moderate"],
            "weak_areas": [p["category"] for p in performance if p["level"] == "weak"],
            "overall_average": round(overall, 1)
        }

    def _trend(self, scores_newest_first: List[int]) -> str:
        if len(scores_newest_first) < TREND_WINDOW * 2:
            return "stable"

        recent = scores_newest_first[:TREND_WINDOW]
        older = scores_newest_first[TREND_WINDOW:TREND_WINDOW * 2]
        recent_avg = sum(recent) / len(recent)
        older_avg = sum(older) / len(older)

        if recent_avg > older_avg + TREND_MARGIN:
            return "up"
        if recent_avg < older_avg - TREND_MARGIN:
            return "down"
        return "stable"


# Global instance
analytics_service = AnalyticsService()
