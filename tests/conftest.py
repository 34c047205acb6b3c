"""Shared fixtures: a throwaway SQLite database, users, tokens and quiz factories."""

import os
import tempfile

_db_fd, _db_path = tempfile.mkstemp(suffix=".db")
os.close(_db_fd)

os.environ["DATABASE_URL"] = f"sqlite:///{_db_path}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["SESSION_SWEEP_INTERVAL"] = "0"
for _name in ("GEMINI_API_KEY", "ADMIN_EMAIL", "ADMIN_USERNAME", "ADMIN_PASSWORD"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, engine, SessionLocal  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models import User  # noqa: E402
from app.schemas.quiz import QuizCreate  # noqa: E402
from app.services.quiz_service import quiz_service  # noqa: E402
from app.utils.security import create_access_token, hash_password  # noqa: E402


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    if os.path.exists(_db_path):
        os.remove(_db_path)


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(fastapi_app)


@pytest.fixture
def make_user(db):
    """Factory: make_user("alice", role="user", password="secret1")"""

    def _make(username, role="user", password="secret1", email=None, legacy_hash=None):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            role=role,
            password_hash=None if legacy_hash else hash_password(password),
            password=legacy_hash,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user("alice")


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role)}"}


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


def question(text, correct=0, category=None):
    return {
        "question": text,
        "options": ["Option A", "Option B", "Option C", "Option D"],
        "correct_answer": correct,
        "category": category,
    }


@pytest.fixture
def make_quiz(db, admin):
    """Factory: make_quiz(questions=[...], time_limit=..., ...) -> Quiz"""

    def _make(title="General Knowledge", questions=None, **fields):
        data = QuizCreate(
            title=title,
            questions=questions or [
                question("What is 2 + 2?", correct=1, category="Math"),
                question("Capital of France?", correct=2, category="Geography"),
            ],
            **fields,
        )
        return quiz_service.create_quiz(db, data, admin)

    return _make


def take_quiz(client, quiz, headers, selections):
    """Run a full session: answer {index: option} then submit. Returns the SessionResult json."""
    session_id = client.post(f"/api/quizzes/{quiz.id}/sessions", json={}, headers=headers).json()["id"]
    for index, selected in selections.items():
        client.put(
            f"/api/sessions/{session_id}/answers/{index}",
            json={"selected_answer": selected},
            headers=headers,
        )
    return client.post(f"/api/sessions/{session_id}/submit", headers=headers).json()
