"""
Pydantic schemas for taking a quiz
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional
from uuid import UUID
from datetime import datetime

from app.schemas.quiz import QuestionPublic


class SessionStart(BaseModel):
    practice: bool = False


class AnswerSubmit(BaseModel):
    selected_answer: int = Field(..., ge=0, le=3)


class SessionView(BaseModel):
    """Countdown and answer sheet of a session"""
    id: UUID
    quiz_id: UUID
    quiz_title: str
    status: Literal["active", "submitted", "expired", "cancelled"]
    is_practice: bool
    started_at: datetime
    deadline: Optional[datetime] = None
    time_remaining: Optional[int] = None  # seconds, None without a time limit
    time_remaining_display: Optional[str] = None  # m:ss
    total_questions: int
    answered: int
    answers: Dict[int, int]  # question index -> selected option
    questions: List[QuestionPublic]
    attempt_id: Optional[UUID] = None


class SessionResult(BaseModel):
    """Outcome of a submitted or expired session"""
    session_id: UUID
    status: Literal["submitted", "expired"]
    attempt_id: Optional[UUID] = None
    score: int
    total_questions: int
    percentage: int
    time_taken: int
    auto_submitted: bool
