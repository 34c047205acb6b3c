"""
Performance analytics API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from app.api.deps import get_current_user, require_admin
from app.database import get_db
from app.models import User
from app.schemas.analytics import AdminAnalytics, UserProgress, PerformanceAnalysis
from app.services.analytics_service import analytics_service

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/admin", response_model=AdminAnalytics)
async def get_admin_analytics(
    time_range: str = Query("30d", pattern="^(7d|30d|90d)$"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Platform analytics for a time range (admin)

    Returns:
    - Totals for quizzes, users and attempts in range
    - Average score across attempts in range
    - Most attempted quizzes and category performance
    - Daily engagement for the last 14 active days
    - Recent activity feed
    """
    try:
        logger.info(f"Fetching admin analytics for {time_range}")
        return analytics_service.get_admin_analytics(db, time_range)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch admin analytics: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")


@router.get("/me/progress", response_model=UserProgress)
async def get_my_progress(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Dashboard summary: totals, average, strong and weak categories, recent attempts"""
    try:
        return analytics_service.get_user_progress(db, user.id)

    except Exception as e:
        logger.error(f"Failed to fetch progress for {user.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch progress")


@router.get("/me/performance", response_model=PerformanceAnalysis)
async def get_my_performance(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Per-category averages, best scores and trends across all attempts"""
    try:
        return analytics_service.get_performance_analysis(db, user.id)

    except Exception as e:
        logger.error(f"Failed to fetch performance for {user.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch performance analysis")
