"""
Attempt history, results, reports and learning plan API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas.attempt import AttemptResponse, AttemptResults, LearningPlanResponse
from app.services.attempt_service import attempt_service
from app.services.learning_plan_service import learning_plan_service
from app.services.report_service import report_service
from app.services.scoring_service import scoring_service

router = APIRouter(prefix="/api/attempts", tags=["attempts"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=List[AttemptResponse])
async def get_my_attempts(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The signed-in user's attempts, newest first"""
    return attempt_service.user_attempts(db, user.id)


@router.get("/{attempt_id}", response_model=AttemptResponse)
async def get_attempt(
    attempt_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    attempt = attempt_service.get_attempt(db, attempt_id, user)
    return scoring_service.attempt_to_dict(attempt)


@router.get("/{attempt_id}/results", response_model=AttemptResults)
async def get_results(
    attempt_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Scored results of an attempt

    Returns:
    - Overall percentage
    - Category performance with strong / moderate / weak levels
    - Every question with the user's answer and the correct one
    """
    attempt = attempt_service.get_attempt(db, attempt_id, user)
    return scoring_service.build_results(attempt)


@router.get("/{attempt_id}/report", response_class=PlainTextResponse)
async def download_report(
    attempt_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Results as a downloadable text file"""
    attempt = attempt_service.get_attempt(db, attempt_id, user)
    title = attempt.quiz.title if attempt.quiz else "quiz"

    return PlainTextResponse(
        report_service.render(attempt),
        headers={"Content-Disposition": f'attachment; filename="{report_service.filename(title)}"'}
    )


@router.post("/{attempt_id}/learning-plan", response_model=LearningPlanResponse)
async def create_learning_plan(
    attempt_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Personalized learning plan from the questions answered incorrectly

    Uses Gemini when configured; otherwise the plan is built from the
    missed questions themselves.
    """
    attempt = attempt_service.get_attempt(db, attempt_id, user)

    try:
        return learning_plan_service.generate(attempt)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to build learning plan for {attempt_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate learning plan")
