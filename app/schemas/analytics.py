"""
Pydantic schemas for leaderboards and analytics endpoints
"""
from pydantic import BaseModel
from typing import List, Literal
from uuid import UUID
from datetime import datetime

from app.schemas.attempt import AttemptResponse, CategoryLevel


class LeaderboardEntry(BaseModel):
    """A user's best attempt on the global board"""
    rank: int
    user_id: UUID
    username: str
    score: int  # percentage
    quiz_id: UUID
    completed_at: datetime
    total_questions: int
    time_spent: int


class QuizLeaderboardEntry(BaseModel):
    rank: int
    user_id: UUID
    username: str
    score: int  # percentage
    completed_at: datetime
    time_taken: int


class QuizLeaderboard(BaseModel):
    quiz_id: UUID
    quiz_title: str
    quiz_category: str
    participants: int
    entries: List[QuizLeaderboardEntry]


class PopularQuiz(BaseModel):
    id: UUID
    title: str
    attempts: int
    average_score: int


class EngagementDay(BaseModel):
    date: str  # YYYY-MM-DD
    attempts: int
    users: int


class CategoryAttempts(BaseModel):
    category: str
    attempts: int
    average_score: int


class ActivityItem(BaseModel):
    id: UUID
    type: Literal["quiz_created", "quiz_attempted", "user_registered"]
    description: str
    timestamp: datetime


class AdminAnalytics(BaseModel):
    """Aggregate platform analytics for a time range"""
    time_range: str
    total_quizzes: int
    total_users: int
    total_attempts: int
    average_score: int
    popular_quizzes: List[PopularQuiz]
    user_engagement: List[EngagementDay]
    category_performance: List[CategoryAttempts]
    recent_activity: List[ActivityItem]


class UserProgress(BaseModel):
    """Dashboard summary for the signed-in user"""
    total_attempts: int
    total_quizzes: int
    average_score: int
    strong_categories: List[str]
    weak_categories: List[str]
    recent_attempts: List[AttemptResponse]


class CategoryAnalysis(BaseModel):
    category: str
    average_score: float
    total_attempts: int
    best_score: int
    recent_trend: Literal["up", "down", "stable"]
    level: CategoryLevel


class PerformanceAnalysis(BaseModel):
    category_performance: List[CategoryAnalysis]
    strong_areas: List[str]
    moderate_areas: List[str]
    weak_areas: List[str]
    overall_average: float
