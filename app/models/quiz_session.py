"""
QuizSession model - an in-progress run through a quiz
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.clock import utcnow
import uuid


class QuizSession(Base):
    """
    Quiz sessions table - countdown deadline and the selections recorded so far

    Status moves from `active` to exactly one of `submitted`, `expired` or
    `cancelled` and never back.
    """
    __tablename__ = "quiz_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    is_practice = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="active", index=True)
    answers = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)  # {"0": 2}
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    deadline = Column(DateTime(timezone=True))  # NULL when the quiz has no time limit
    finished_at = Column(DateTime(timezone=True))
    attempt_id = Column(Uuid, ForeignKey("quiz_attempts.id", ondelete="SET NULL"))

    quiz = relationship("Quiz", back_populates="sessions")
    attempt = relationship("QuizAttempt")

    def __repr__(self):
        return f"<QuizSession(id={self.id}, quiz_id={self.quiz_id}, status={self.status})>"
