"""
Quiz authoring, browsing and import API endpoints
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from app.api.deps import get_current_user, require_admin
from app.config import settings
from app.database import get_db
from app.models import User
from app.schemas.attempt import AttemptResponse
from app.schemas.quiz import (
    QuizCreate, QuizUpdate, QuizSummary, QuizDetail,
    QuizAvailability, ImportPreview
)
from app.services.attempt_service import attempt_service
from app.services.import_service import import_service
from app.services.quiz_service import quiz_service

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[QuizSummary])
async def list_quizzes(
    search: Optional[str] = Query(None, description="Match title, description or category"),
    category: Optional[str] = None,
    sort_by: str = Query("latest", pattern="^(latest|title|category)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Browse quizzes

    Quizzes scheduled for later are only listed for admins.
    """
    return quiz_service.list_quizzes(db, user, search, category, sort_by)


@router.get("/categories", response_model=List[str])
async def list_categories(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return quiz_service.categories(db)


@router.get("/favorites", response_model=List[QuizSummary])
async def list_favorites(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return quiz_service.list_favorites(db, user)


@router.post("/", response_model=QuizDetail, status_code=201)
async def create_quiz(
    data: QuizCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Create a quiz with its questions (admin)

    - At least one question
    - Exactly four non-empty options per question
    - Correct answer index between 0 and 3
    """
    try:
        quiz = quiz_service.create_quiz(db, data, admin)
        return quiz_service.quiz_detail(db, quiz, admin)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create quiz: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create quiz")


@router.post("/import/csv/preview", response_model=ImportPreview)
async def preview_csv_import(
    file: UploadFile = File(...),
    category: str = Form("General"),
    admin: User = Depends(require_admin)
):
    """Parse a CSV file into editable questions without saving (admin)"""
    return await import_service.preview_csv(file, category)


@router.post("/import/document/preview", response_model=ImportPreview)
async def preview_document_import(
    file: UploadFile = File(...),
    category: str = Form("General"),
    admin: User = Depends(require_admin)
):
    """
    Extract questions from a PDF or text file without saving (admin)

    PDFs are read with Gemini and need GEMINI_API_KEY.
    """
    return await import_service.preview_document(file, category)


@router.post("/import/csv", response_model=QuizDetail, status_code=201)
async def import_csv_quiz(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(""),
    category: str = Form("General"),
    time_limit: Optional[int] = Form(None),
    max_attempts: Optional[int] = Form(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a quiz straight from a CSV file (admin)"""
    preview = await import_service.preview_csv(file, category)
    if not preview["questions"]:
        raise HTTPException(status_code=400, detail="No valid questions found in the CSV file")

    try:
        data = QuizCreate(
            title=title,
            description=description,
            category=category,
            time_limit=time_limit or settings.DEFAULT_QUIZ_TIME_LIMIT,
            max_attempts=max_attempts,
            questions=preview["questions"]
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        quiz = quiz_service.create_quiz(db, data, admin)
        logger.info(f"Imported quiz {quiz.id} from {file.filename} ({len(preview['skipped_rows'])} rows skipped)")
        return quiz_service.quiz_detail(db, quiz, admin)

    except Exception as e:
        logger.error(f"Failed to import quiz: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to import quiz")


@router.get("/{quiz_id}", response_model=QuizDetail)
async def get_quiz(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Quiz details; questions with answers are included for admins only"""
    quiz = quiz_service.get_quiz_or_404(db, quiz_id)
    return quiz_service.quiz_detail(db, quiz, user)


@router.get("/{quiz_id}/availability", response_model=QuizAvailability)
async def get_availability(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    quiz = quiz_service.get_quiz_or_404(db, quiz_id)
    return quiz_service.availability(db, quiz, user)


@router.patch("/{quiz_id}", response_model=QuizDetail)
async def update_quiz(
    quiz_id: UUID,
    data: QuizUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update quiz settings; a questions list replaces all questions (admin)"""
    quiz = quiz_service.get_quiz_or_404(db, quiz_id)

    try:
        quiz = quiz_service.update_quiz(db, quiz, data)
        return quiz_service.quiz_detail(db, quiz, admin)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update quiz {quiz_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update quiz")


@router.delete("/{quiz_id}", status_code=204)
async def delete_quiz(
    quiz_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a quiz with its questions and attempts (admin)"""
    quiz = quiz_service.get_quiz_or_404(db, quiz_id)
    quiz_service.delete_quiz(db, quiz)
    return Response(status_code=204)


@router.post("/{quiz_id}/favorite", status_code=204)
async def add_favorite(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    quiz = quiz_service.get_quiz_or_404(db, quiz_id)
    quiz_service.add_favorite(db, user, quiz)
    return Response(status_code=204)


@router.delete("/{quiz_id}/favorite", status_code=204)
async def remove_favorite(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    quiz_service.remove_favorite(db, user, quiz_id)
    return Response(status_code=204)


@router.get("/{quiz_id}/attempts/me", response_model=List[AttemptResponse])
async def get_my_quiz_attempts(
    quiz_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The signed-in user's attempts on this quiz, newest first"""
    return attempt_service.user_quiz_attempts(db, user.id, quiz_id)


@router.get("/{quiz_id}/results", response_model=List[AttemptResponse])
async def get_quiz_results(
    quiz_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Top attempts on a quiz by score (admin)"""
    quiz_service.get_quiz_or_404(db, quiz_id)
    return attempt_service.quiz_results(db, quiz_id)
