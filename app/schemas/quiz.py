"""
Pydantic schemas for quiz authoring, browsing and import
"""
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class QuestionCreate(BaseModel):
    """A multiple choice question with exactly four options"""
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(..., ge=0, le=3, description="Index of the correct option")
    category: Optional[str] = Field(None, max_length=100)

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Question text is required")
        return value.strip()

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, value: List[str]) -> List[str]:
        if any(not option.strip() for option in value):
            raise ValueError("All four options are required")
        return [option.strip() for option in value]


class QuizCreate(BaseModel):
    """Schema for authoring a quiz together with its questions"""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: str = Field("General", min_length=1, max_length=100)
    time_limit: Optional[int] = Field(None, ge=1, description="Time limit in minutes")
    max_attempts: Optional[int] = Field(None, ge=1)
    start_time: Optional[datetime] = None
    questions: List[QuestionCreate] = Field(..., min_length=1)

    @field_validator("title", "category")
    @classmethod
    def not_blank(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            raise ValueError(f"Quiz {info.field_name} is required")
        return value.strip()


class QuizUpdate(BaseModel):
    """Partial update; questions are replaced wholesale when given"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    time_limit: Optional[int] = Field(None, ge=1)
    max_attempts: Optional[int] = Field(None, ge=1)
    start_time: Optional[datetime] = None
    questions: Optional[List[QuestionCreate]] = Field(None, min_length=1)

    @field_validator("title", "category", "description")
    @classmethod
    def not_null(cls, value: Optional[str], info: ValidationInfo) -> str:
        # Omit a field to keep it; null is not a value these columns take
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        if info.field_name != "description" and not value.strip():
            raise ValueError(f"Quiz {info.field_name} is required")
        return value.strip()


class QuestionResponse(BaseModel):
    """Question including its answer, for authors"""
    id: UUID
    question: str
    options: List[str]
    correct_answer: int
    category: str
    position: int

    class Config:
        from_attributes = True


class QuestionPublic(BaseModel):
    """Question as shown while taking a quiz"""
    index: int
    id: UUID
    question: str
    options: List[str]
    category: str


class QuizSummary(BaseModel):
    """Quiz as listed in the browser"""
    id: UUID
    title: str
    description: str
    category: str
    time_limit: Optional[int] = None
    max_attempts: Optional[int] = None
    start_time: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    question_count: int = 0


class QuizAvailability(BaseModel):
    """Whether the current user may start a new attempt"""
    attempts_used: int
    attempts_remaining: Optional[int] = None
    can_start: bool
    reason: Optional[str] = None


class QuizDetail(QuizSummary):
    creator_username: Optional[str] = None
    questions: Optional[List[QuestionResponse]] = None
    availability: Optional[QuizAvailability] = None
    is_favorite: bool = False


class ImportedQuestion(BaseModel):
    """Question extracted from an uploaded file, editable before saving"""
    question: str
    options: List[str]
    correct_answer: int
    category: str


class ImportPreview(BaseModel):
    filename: str
    questions: List[ImportedQuestion]
    skipped_rows: List[int] = []
    extracted_text: Optional[str] = None
