"""
Quiz session service
Server-side countdown, answer sheet and submission of a quiz run
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models import Quiz, QuizAttempt, QuizSession, User
from app.services.quiz_service import quiz_service
from app.services.scoring_service import scoring_service, round_half_up
from app.utils.cache import cache_service
from app.utils.clock import ensure_utc, format_duration, utcnow

logger = logging.getLogger(__name__)

ACTIVE = "active"
SUBMITTED = "submitted"
EXPIRED = "expired"
CANCELLED = "cancelled"


class SessionService:
    """
    Lifecycle of a quiz session

    active -> submitted  (user submits)
    active -> expired    (deadline passes; graded with answers recorded so far)
    active -> cancelled  (user abandons the run)

    Expiry is applied lazily whenever a session is loaded and by a periodic
    sweep, so an overdue session is never graded with late answers.
    """

    def is_overdue(self, session: QuizSession, now: Optional[datetime] = None) -> bool:
        deadline = ensure_utc(session.deadline)
        return session.status == ACTIVE and deadline is not None and (now or utcnow()) >= deadline

    def get_session(self, db: Session, session_id: UUID, user: User) -> QuizSession:
        """Load a session owned by user, expiring it first when overdue"""
        session = db.query(QuizSession).filter(
            QuizSession.id == session_id,
            QuizSession.user_id == user.id
        ).first()
        if not session:
            raise HTTPException(status_code=404, detail="Quiz session not found")

        if self.is_overdue(session):
            self._finalize(db, session, EXPIRED)
        return session

    def start(self, db: Session, quiz_id: UUID, user: User, practice: bool = False) -> Tuple[QuizSession, bool]:
        """
        Open a session, or return the user's active one for this quiz

        Returns:
            Tuple of (session, created); created is False when resuming

        Raises:
            HTTPException: 404 unknown quiz, 403 not open yet or out of
            attempts, 422 quiz without questions
        """
        quiz = quiz_service.get_quiz_or_404(db, quiz_id)

        if not user.is_admin and not quiz_service.is_open(quiz):
            raise HTTPException(
                status_code=403,
                detail=f"This quiz is scheduled to start on {ensure_utc(quiz.start_time).isoformat()}."
            )

        if not quiz.questions:
            raise HTTPException(status_code=422, detail="No questions found for this quiz")

        existing = db.query(QuizSession).filter(
            QuizSession.user_id == user.id,
            QuizSession.quiz_id == quiz.id,
            QuizSession.is_practice == practice,
            QuizSession.status == ACTIVE
        ).order_by(QuizSession.started_at.desc()).first()

        if existing and self.is_overdue(existing):
            self._finalize(db, existing, EXPIRED)
            existing = None
        if existing:
            logger.info(f"Resuming session {existing.id} for {user.username}")
            return existing, False

        if not practice and quiz.max_attempts:
            used = quiz_service.count_attempts(db, user.id, quiz.id)
            if used >= quiz.max_attempts:
                raise HTTPException(
                    status_code=403,
                    detail="You have reached the maximum number of attempts for this quiz."
                )

        started_at = utcnow()
        session = QuizSession(
            user_id=user.id,
            quiz_id=quiz.id,
            is_practice=practice,
            status=ACTIVE,
            answers={},
            started_at=started_at,
            deadline=started_at + timedelta(minutes=quiz.time_limit) if quiz.time_limit else None
        )
        db.add(session)
        db.commit()
        db.refresh(session)

        logger.info(
            f"Session started: {session.id} quiz={quiz.id} user={user.username} "
            f"practice={practice} deadline={session.deadline}"
        )
        return session, True

    def time_remaining(self, session: QuizSession, now: Optional[datetime] = None) -> Optional[int]:
        deadline = ensure_utc(session.deadline)
        if deadline is None:
            return None
        if session.status != ACTIVE:
            return 0
        return max(int((deadline - (now or utcnow())).total_seconds()), 0)

    def view(self, session: QuizSession) -> Dict[str, Any]:
        """Session as shown while taking the quiz; correct answers stay hidden"""
        quiz: Quiz = session.quiz
        remaining = self.time_remaining(session)
        answers = {int(index): int(selected) for index, selected in (session.answers or {}).items()}

        return {
            "id": session.id,
            "quiz_id": quiz.id,
            "quiz_title": quiz.title,
            "status": session.status,
            "is_practice": session.is_practice,
            "started_at": ensure_utc(session.started_at),
            "deadline": ensure_utc(session.deadline),
            "time_remaining": remaining,
            "time_remaining_display": format_duration(remaining) if remaining is not None else None,
            "total_questions": len(quiz.questions),
            "answered": len(answers),
            "answers": answers,
            "questions": [
                {
                    "index": index,
                    "id": question.id,
                    "question": question.question,
                    "options": list(question.options),
                    "category": question.category
                }
                for index, question in enumerate(quiz.questions)
            ],
            "attempt_id": session.attempt_id
        }

    def record_answer(self, db: Session, session: QuizSession, index: int, selected: int) -> QuizSession:
        """
        Record or overwrite the selection for question index

        The row is locked and read again before merging, so answers sent at
        the same time do not overwrite each other. The write only lands while
        the session is still active and before its deadline.
        """
        if session.status != ACTIVE:
            raise self._not_active(session)

        total = len(session.quiz.questions)
        if not 0 <= index < total:
            raise HTTPException(status_code=404, detail=f"Question index must be between 0 and {total - 1}")

        current = db.query(QuizSession).filter(
            QuizSession.id == session.id,
            QuizSession.status == ACTIVE
        ).with_for_update().populate_existing().first()
        if current is None:
            db.rollback()
            db.refresh(session)
            raise self._not_active(session)

        answers = dict(current.answers or {})
        answers[str(index)] = selected

        updated = db.query(QuizSession).filter(
            QuizSession.id == session.id,
            QuizSession.status == ACTIVE,
            or_(QuizSession.deadline.is_(None), QuizSession.deadline > utcnow())
        ).update({"answers": answers}, synchronize_session=False)

        if not updated:
            db.rollback()
            db.refresh(session)
            if self.is_overdue(session):
                self._finalize(db, session, EXPIRED)
            raise self._not_active(session)

        db.commit()
        db.refresh(session)
        return session

    @staticmethod
    def _not_active(session: QuizSession) -> HTTPException:
        return HTTPException(status_code=409, detail=f"Quiz session is {session.status}; answers can no longer change")

    def submit(self, db: Session, session: QuizSession) -> Dict[str, Any]:
        """
        Grade the recorded answers and store the attempt

        Submitting a session that already expired returns the auto-submitted
        result; a second submit returns the same result again.
        """
        if session.status == CANCELLED:
            raise HTTPException(status_code=409, detail="Quiz session was cancelled")

        if session.status == ACTIVE:
            quiz = session.quiz
            if not session.is_practice and quiz.max_attempts:
                used = quiz_service.count_attempts(db, session.user_id, quiz.id)
                if used >= quiz.max_attempts:
                    self._close(db, session, CANCELLED)
                    raise HTTPException(
                        status_code=403,
                        detail="You have reached the maximum number of attempts for this quiz."
                    )

            self._finalize(db, session, SUBMITTED)

        return self.result(session)

    def cancel(self, db: Session, session: QuizSession) -> QuizSession:
        if session.status != ACTIVE:
            raise HTTPException(status_code=409, detail=f"Quiz session is already {session.status}")
        self._close(db, session, CANCELLED)
        logger.info(f"Session cancelled: {session.id}")
        return session

    def _time_taken(self, session: QuizSession) -> int:
        quiz = session.quiz
        if session.status == EXPIRED and quiz.time_limit:
            return quiz.time_limit * 60
        finished_at = ensure_utc(session.finished_at) or utcnow()
        return max(round_half_up((finished_at - ensure_utc(session.started_at)).total_seconds()), 0)

    def result(self, session: QuizSession) -> Dict[str, Any]:
        """
        SessionResult payload for a finished session

        Comes from the stored attempt; practice runs store none and are
        graded again.
        """
        attempt: Optional[QuizAttempt] = session.attempt
        if attempt is not None:
            score, total = attempt.score, attempt.total_questions
            time_taken, auto_submitted = attempt.time_taken or 0, bool(attempt.auto_submitted)
        else:
            questions = list(session.quiz.questions)
            score, _ = scoring_service.grade_answers(questions, session.answers)
            total = len(questions)
            time_taken, auto_submitted = self._time_taken(session), session.status == EXPIRED

        return {
            "session_id": session.id,
            "status": session.status,
            "attempt_id": session.attempt_id,
            "score": score,
            "total_questions": total,
            "percentage": scoring_service.percentage(score, total),
            "time_taken": time_taken,
            "auto_submitted": auto_submitted
        }

    def _claim(self, db: Session, session: QuizSession, status: str, finished_at: datetime) -> bool:
        """Move an active session to status; False when another worker got there first"""
        claimed = db.query(QuizSession).filter(
            QuizSession.id == session.id,
            QuizSession.status == ACTIVE
        ).update({"status": status, "finished_at": finished_at}, synchronize_session=False)

        if not claimed:
            db.rollback()
            db.refresh(session)
            return False

        db.refresh(session)
        return True

    def _close(self, db: Session, session: QuizSession, status: str) -> None:
        if self._claim(db, session, status, utcnow()):
            db.commit()

    def _finalize(self, db: Session, session: QuizSession, status: str) -> None:
        """Grade the session and, unless practicing, record the attempt"""
        if status == EXPIRED:
            finished_at = ensure_utc(session.deadline)
        else:
            finished_at = utcnow()

        if not self._claim(db, session, status, finished_at):
            return

        quiz = session.quiz
        questions = list(quiz.questions)
        score, answers = scoring_service.grade_answers(questions, session.answers)

        try:
            if not session.is_practice:
                attempt = QuizAttempt(
                    user_id=session.user_id,
                    quiz_id=quiz.id,
                    score=score,
                    total_questions=len(questions),
                    answers=answers,
                    time_taken=self._time_taken(session),
                    auto_submitted=status == EXPIRED,
                    completed_at=finished_at
                )
                db.add(attempt)
                db.flush()
                session.attempt_id = attempt.id

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(session)
        logger.info(
            f"Session {status}: {session.id} quiz={quiz.id} score={score}/{len(questions)} "
            f"practice={session.is_practice}"
        )

        if not session.is_practice:
            cache_service.invalidate_attempt(session.user_id, quiz.id, score)

    def expire_overdue(self, db: Session, now: Optional[datetime] = None) -> int:
        """Auto-submit every active session whose deadline has passed"""
        now = now or utcnow()
        overdue = db.query(QuizSession).filter(
            QuizSession.status == ACTIVE,
            QuizSession.deadline.isnot(None),
            QuizSession.deadline <= now
        ).all()

        expired = 0
        for session in overdue:
            if self.is_overdue(session, now):
                self._finalize(db, session, EXPIRED)
                expired += 1

        if expired:
            logger.info(f"Auto-submitted {expired} overdue session(s)")
        return expired

    def _sweep_once(self) -> int:
        db = SessionLocal()
        try:
            return self.expire_overdue(db)
        finally:
            db.close()

    async def run_sweeper(self, interval: float) -> None:
        """Expire overdue sessions every interval seconds until cancelled"""
        logger.info(f"Session sweeper running every {interval}s")
        while True:
            await asyncio.sleep(interval)
            try:
                await asyncio.to_thread(self._sweep_once)
            except Exception as e:
                logger.error(f"Session sweep failed: {str(e)}", exc_info=True)


# Global instance
session_service = SessionService()
