"""
Leaderboard API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas.analytics import LeaderboardEntry, QuizLeaderboard
from app.services.leaderboard_service import leaderboard_service

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    limit: int = Query(50, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Best attempt of each user by percentage"""
    return leaderboard_service.get_global(db, limit)


@router.get("/quizzes/{quiz_id}", response_model=QuizLeaderboard)
async def get_quiz_leaderboard(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Top ten on one quiz; ties go to the faster attempt"""
    return leaderboard_service.get_for_quiz(db, quiz_id)
