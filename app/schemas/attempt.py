"""
Pydantic schemas for attempts, results and learning plans
"""
from pydantic import BaseModel
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

CategoryLevel = Literal["strong", "moderate", "weak"]


class UserAnswer(BaseModel):
    """Answer stored inside an attempt, with the question denormalized for reporting"""
    question_id: str
    selected_answer: Optional[int] = None
    is_correct: bool
    category: str
    question: Optional[str] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None


class AttemptResponse(BaseModel):
    id: UUID
    user_id: UUID
    quiz_id: UUID
    score: int
    total_questions: int
    percentage: int
    time_taken: int
    auto_submitted: bool
    completed_at: Optional[datetime] = None
    quiz_title: Optional[str] = None
    quiz_category: Optional[str] = None
    username: Optional[str] = None


class CategoryPerformance(BaseModel):
    category: str
    correct: int
    total: int
    percentage: int
    level: CategoryLevel


class DetailedAnswer(BaseModel):
    question: str
    options: List[str]
    user_answer: Optional[int] = None
    correct_answer: int
    is_correct: bool
    category: str


class AttemptResults(BaseModel):
    """Everything the results view shows for one attempt"""
    attempt: AttemptResponse
    quiz_title: str
    percentage: int
    category_performance: List[CategoryPerformance]
    strong_categories: List[str]
    moderate_categories: List[str]
    weak_categories: List[str]
    detailed_answers: List[DetailedAnswer]


class GeneratedQuestion(BaseModel):
    question: str
    options: List[str]
    correct_answer: int


class LearningPlanResponse(BaseModel):
    learning_plan: str  # HTML
    new_quiz_questions: List[GeneratedQuestion]
    generated_by: Literal["gemini", "fallback"]
