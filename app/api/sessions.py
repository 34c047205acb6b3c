"""
Quiz-taking API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.schemas.session import SessionStart, AnswerSubmit, SessionView, SessionResult
from app.services.session_service import session_service

router = APIRouter(prefix="/api", tags=["sessions"])
logger = logging.getLogger(__name__)


@router.post("/quizzes/{quiz_id}/sessions", response_model=SessionView, status_code=201)
async def start_session(
    quiz_id: UUID,
    response: Response,
    data: SessionStart = SessionStart(),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Start taking a quiz

    - Returns the active session with 200 when one is already open
    - Practice sessions ignore the attempt limit and record no attempt
    - The countdown runs on the server; time_remaining is in seconds
    """
    session, created = session_service.start(db, quiz_id, user, data.practice)
    if not created:
        response.status_code = 200
    return session_service.view(session)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = session_service.get_session(db, session_id, user)
    return session_service.view(session)


@router.put("/sessions/{session_id}/answers/{question_index}", response_model=SessionView)
async def answer_question(
    session_id: UUID,
    question_index: int,
    data: AnswerSubmit,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record the selected option for a question; answers can change until submit"""
    session = session_service.get_session(db, session_id, user)
    session = session_service.record_answer(db, session, question_index, data.selected_answer)
    return session_service.view(session)


@router.post("/sessions/{session_id}/submit", response_model=SessionResult)
async def submit_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit the quiz

    A session whose time ran out was already submitted automatically with
    the answers recorded in time; that result is returned.
    """
    session = session_service.get_session(db, session_id, user)

    try:
        return session_service.submit(db, session)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to submit session {session_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to submit quiz")


@router.post("/sessions/{session_id}/cancel", response_model=SessionView)
async def cancel_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    session = session_service.get_session(db, session_id, user)
    session = session_service.cancel(db, session)
    return session_service.view(session)
