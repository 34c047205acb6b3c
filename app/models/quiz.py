"""
Quiz and Question models - authored quizzes and their questions
"""
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.clock import utcnow
import uuid


class Quiz(Base):
    """
    Quizzes table - metadata, timing and attempt limits
    """
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default="General", index=True)
    time_limit = Column(Integer)  # minutes
    max_attempts = Column(Integer)
    start_time = Column(DateTime(timezone=True))  # NULL means immediately accessible
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.position",
        cascade="all, delete-orphan"
    )
    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")
    sessions = relationship("QuizSession", back_populates="quiz", cascade="all, delete-orphan")
    favorites = relationship("UserFavorite", back_populates="quiz", cascade="all, delete-orphan")
    creator = relationship("User")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, category={self.category})>"


class Question(Base):
    """
    Questions table - four options and the index of the correct one
    """
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # ["A", "B", "C", "D"]
    correct_answer = Column(Integer, nullable=False)  # 0..3
    category = Column(String(100), nullable=False, default="General")
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, position={self.position})>"
