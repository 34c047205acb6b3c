"""
QuizAttempt model - one finished run through a quiz
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.clock import utcnow
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - written once when a session is submitted or expires
    """
    __tablename__ = "quiz_attempts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False)
    answers = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)  # [UserAnswer]
    time_taken = Column(Integer, nullable=False, default=0)  # seconds
    auto_submitted = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    user = relationship("User", back_populates="attempts")
    quiz = relationship("Quiz", back_populates="attempts")

    def __repr__(self):
        return f"<QuizAttempt(user_id={self.user_id}, quiz_id={self.quiz_id}, score={self.score}/{self.total_questions})>"
