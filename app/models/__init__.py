"""
Database models package
"""
from app.models.user import User
from app.models.quiz import Quiz, Question
from app.models.quiz_attempt import QuizAttempt
from app.models.quiz_session import QuizSession
from app.models.user_favorite import UserFavorite

__all__ = ["User", "Quiz", "Question", "QuizAttempt", "QuizSession", "UserFavorite"]
