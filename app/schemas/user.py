"""
Pydantic schemas for user profiles and admin user management
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime


class UserResponse(BaseModel):
    """Public profile"""
    id: UUID
    username: str
    email: str
    role: Literal["admin", "user"]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")


class RoleUpdate(BaseModel):
    role: Literal["admin", "user"]


class UserAttemptSummary(BaseModel):
    """One attempt inside the admin all-results view"""
    id: UUID
    quiz_id: UUID
    quiz_title: Optional[str] = None
    quiz_category: Optional[str] = None
    score: int
    total_questions: int
    percentage: int
    time_taken: int
    completed_at: Optional[datetime] = None


class UserResults(BaseModel):
    """A user with all of their attempts"""
    id: UUID
    username: str
    email: str
    created_at: Optional[datetime] = None
    total_attempts: int
    average_score: int
    attempts: List[UserAttemptSummary]


class LegacyUser(BaseModel):
    id: UUID
    email: str
    username: str
    created_at: Optional[datetime] = None


class LegacyUserStats(BaseModel):
    total: int
    users: List[LegacyUser]
    message: str


class LegacyPasswordReset(BaseModel):
    """Password applied to legacy accounts; the configured default when omitted"""
    password: Optional[str] = Field(None, min_length=6, max_length=128)


class LegacyResetResult(BaseModel):
    success: bool
    message: str
    updated_count: int
    users: List[LegacyUser] = []
