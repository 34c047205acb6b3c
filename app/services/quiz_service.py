"""
Quiz authoring, browsing, availability and favorites
"""
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Quiz, Question, QuizAttempt, User, UserFavorite
from app.schemas.quiz import QuizCreate, QuizUpdate, QuestionCreate, QuestionResponse, QuizSummary
from app.utils.cache import cache_service, QueryKeys, STALE_TIMES
from app.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("latest", "title", "category")


class QuizService:
    """Service for quiz CRUD and the quiz browser"""

    def get_quiz_or_404(self, db: Session, quiz_id: UUID) -> Quiz:
        quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise HTTPException(status_code=404, detail="Quiz not found")
        return quiz

    def is_open(self, quiz, now: Optional[datetime] = None) -> bool:
        """A quiz without a start time is open immediately"""
        start_time = ensure_utc(quiz.start_time)
        return start_time is None or (now or utcnow()) >= start_time

    def count_attempts(self, db: Session, user_id: UUID, quiz_id: UUID) -> int:
        return db.query(func.count(QuizAttempt.id)).filter(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id
        ).scalar() or 0

    def availability(self, db: Session, quiz: Quiz, user: User) -> Dict[str, Any]:
        """
        Whether a user may start a new (non-practice) attempt

        Returns:
            Dictionary matching QuizAvailability
        """
        used = self.count_attempts(db, user.id, quiz.id)
        remaining = max(quiz.max_attempts - used, 0) if quiz.max_attempts else None

        reason = None
        if not self.is_open(quiz):
            reason = f"This quiz is scheduled to start on {ensure_utc(quiz.start_time).isoformat()}."
        elif not quiz.questions:
            reason = "No questions found for this quiz"
        elif quiz.max_attempts and used >= quiz.max_attempts:
            reason = "You have reached the maximum number of attempts for this quiz."

        return {
            "attempts_used": used,
            "attempts_remaining": remaining,
            "can_start": reason is None,
            "reason": reason
        }

    def _build_questions(self, items: List[QuestionCreate], default_category: str) -> List[Question]:
        return [
            Question(
                question=item.question,
                options=list(item.options),
                correct_answer=item.correct_answer,
                category=(item.category or "").strip() or default_category,
                position=position
            )
            for position, item in enumerate(items)
        ]

    def create_quiz(self, db: Session, data: QuizCreate, author: User) -> Quiz:
        """Create a quiz and its questions in one transaction"""
        quiz = Quiz(
            title=data.title,
            description=data.description.strip(),
            category=data.category.strip(),
            time_limit=data.time_limit,
            max_attempts=data.max_attempts,
            start_time=data.start_time,
            created_by=author.id
        )
        quiz.questions = self._build_questions(data.questions, quiz.category)

        db.add(quiz)
        db.commit()
        db.refresh(quiz)

        logger.info(f"Quiz created: {quiz.id} ({len(quiz.questions)} questions) by {author.username}")
        cache_service.invalidate_quizzes(quiz.id)

        return quiz

    def update_quiz(self, db: Session, quiz: Quiz, data: QuizUpdate) -> Quiz:
        """Apply a partial update; a questions list replaces the existing questions"""
        fields = data.model_dump(exclude_unset=True, exclude={"questions"})
        for field, value in fields.items():
            setattr(quiz, field, value)

        if data.questions is not None:
            quiz.questions = self._build_questions(data.questions, quiz.category)

        db.commit()
        db.refresh(quiz)

        logger.info(f"Quiz updated: {quiz.id} (fields: {', '.join(fields) or 'none'})")
        cache_service.invalidate_quizzes(quiz.id)

        return quiz

    def delete_quiz(self, db: Session, quiz: Quiz) -> None:
        quiz_id = quiz.id
        db.delete(quiz)
        db.commit()

        logger.info(f"Quiz deleted: {quiz_id}")
        cache_service.invalidate_quizzes(quiz_id)
        cache_service.delete(QueryKeys.LEADERBOARD)

    def _load_summaries(self, db: Session) -> List[Dict[str, Any]]:
        counts = dict(
            db.query(Question.quiz_id, func.count(Question.id)).group_by(Question.quiz_id).all()
        )
        quizzes = db.query(Quiz).order_by(Quiz.created_at.desc()).all()

        return [
            QuizSummary(
                id=quiz.id,
                title=quiz.title,
                description=quiz.description or "",
                category=quiz.category,
                time_limit=quiz.time_limit,
                max_attempts=quiz.max_attempts,
                start_time=ensure_utc(quiz.start_time),
                created_by=quiz.created_by,
                created_at=ensure_utc(quiz.created_at),
                question_count=counts.get(quiz.id, 0)
            ).model_dump(mode="json")
            for quiz in quizzes
        ]

    def list_quizzes(
        self,
        db: Session,
        user: User,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "latest"
    ) -> List[QuizSummary]:
        """
        Browse quizzes

        Non-admins never see quizzes that have not opened yet.
        """
        cached = cache_service.get_or_set(
            QueryKeys.QUIZZES,
            STALE_TIMES["quizzes"],
            lambda: self._load_summaries(db)
        )
        quizzes = [QuizSummary.model_validate(item) for item in cached]

        if search and search.strip():
            term = search.strip().lower()
            quizzes = [
                q for q in quizzes
                if term in q.title.lower() or term in q.description.lower() or term in q.category.lower()
            ]

        if category:
            quizzes = [q for q in quizzes if q.category == category]

        if not user.is_admin:
            now = utcnow()
            quizzes = [q for q in quizzes if self.is_open(q, now)]

        if sort_by == "title":
            quizzes.sort(key=lambda q: q.title.lower())
        elif sort_by == "category":
            quizzes.sort(key=lambda q: q.category.lower())
        else:
            quizzes.sort(key=lambda q: q.created_at or utcnow(), reverse=True)

        return quizzes

    def categories(self, db: Session) -> List[str]:
        rows = db.query(Quiz.category).distinct().order_by(Quiz.category).all()
        return [row[0] for row in rows]

    def quiz_detail(self, db: Session, quiz: Quiz, user: User) -> Dict[str, Any]:
        """
        Quiz with questions for admins; users get counts and their availability
        """
        if not user.is_admin and not self.is_open(quiz):
            raise HTTPException(status_code=404, detail="Quiz not found")

        detail = {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description or "",
            "category": quiz.category,
            "time_limit": quiz.time_limit,
            "max_attempts": quiz.max_attempts,
            "start_time": ensure_utc(quiz.start_time),
            "created_by": quiz.created_by,
            "created_at": ensure_utc(quiz.created_at),
            "question_count": len(quiz.questions),
            "creator_username": quiz.creator.username if quiz.creator else None,
            "availability": self.availability(db, quiz, user),
            "is_favorite": db.query(UserFavorite).filter(
                UserFavorite.user_id == user.id,
                UserFavorite.quiz_id == quiz.id
            ).first() is not None
        }
        if user.is_admin:
            detail["questions"] = [QuestionResponse.model_validate(q) for q in quiz.questions]

        return detail

    def add_favorite(self, db: Session, user: User, quiz: Quiz) -> None:
        exists = db.query(UserFavorite).filter(
            UserFavorite.user_id == user.id,
            UserFavorite.quiz_id == quiz.id
        ).first()
        if exists:
            return

        db.add(UserFavorite(user_id=user.id, quiz_id=quiz.id))
        try:
            db.commit()
        except IntegrityError:
            # Concurrent request already stored it
            db.rollback()

    def remove_favorite(self, db: Session, user: User, quiz_id: UUID) -> bool:
        deleted = db.query(UserFavorite).filter(
            UserFavorite.user_id == user.id,
            UserFavorite.quiz_id == quiz_id
        ).delete()
        db.commit()
        return deleted > 0

    def list_favorites(self, db: Session, user: User) -> List[QuizSummary]:
        favorite_ids = {
            row[0] for row in db.query(UserFavorite.quiz_id).filter(UserFavorite.user_id == user.id).all()
        }
        return [q for q in self.list_quizzes(db, user) if q.id in favorite_ids]


# Global instance
quiz_service = QuizService()
