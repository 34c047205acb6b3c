"""Tests for admin analytics, user progress and performance analysis."""

from datetime import timedelta

from app.models import QuizAttempt
from app.services.analytics_service import analytics_service
from app.utils.clock import utcnow
from tests.conftest import auth_headers, question, take_quiz


class TestAdminAnalytics:

    def test_totals_and_popular_quizzes(self, client, make_quiz, make_user, admin_headers):
        popular, quiet = make_quiz(title="Popular"), make_quiz(title="Quiet", category="Art")
        bob = make_user("bob")
        take_quiz(client, popular, auth_headers(bob), {0: 1, 1: 2})
        take_quiz(client, popular, auth_headers(bob), {0: 1})
        take_quiz(client, quiet, auth_headers(bob), {})

        body = client.get("/api/analytics/admin?time_range=7d", headers=admin_headers).json()

        assert body["total_quizzes"] == 2
        # Admins are not counted as users
        assert body["total_users"] == 1
        assert body["total_attempts"] == 3
        # 3 correct out of 6 questions
        assert body["average_score"] == 50
        assert body["popular_quizzes"][0]["title"] == "Popular"
        assert body["popular_quizzes"][0]["attempts"] == 2
        assert body["popular_quizzes"][0]["average_score"] == 75
        assert {c["category"] for c in body["category_performance"]} == {"General", "Art"}
        assert body["user_engagement"][-1]["attempts"] == 3
        assert body["user_engagement"][-1]["users"] == 1

    def test_range_excludes_old_attempts(self, client, db, make_quiz, user, admin_headers):
        quiz = make_quiz()
        db.add(QuizAttempt(
            user_id=user.id, quiz_id=quiz.id, score=2, total_questions=2, answers=[],
            completed_at=utcnow() - timedelta(days=20),
        ))
        db.commit()

        week = client.get("/api/analytics/admin?time_range=7d", headers=admin_headers).json()
        month = client.get("/api/analytics/admin?time_range=30d", headers=admin_headers).json()

        assert week["total_attempts"] == 0
        assert month["total_attempts"] == 1

    def test_recent_activity_feed(self, client, make_quiz, user, admin_headers):
        make_quiz(title="Fresh")

        activity = client.get("/api/analytics/admin", headers=admin_headers).json()["recent_activity"]

        types = {item["type"] for item in activity}
        assert {"quiz_created", "user_registered"} <= types

    def test_invalid_range(self, client, admin_headers):
        assert client.get("/api/analytics/admin?time_range=1y", headers=admin_headers).status_code == 422

    def test_requires_admin(self, client, user_headers):
        assert client.get("/api/analytics/admin", headers=user_headers).status_code == 403


class TestUserProgress:

    def test_strong_and_weak_categories(self, client, make_quiz, user_headers):
        quiz = make_quiz()
        take_quiz(client, quiz, user_headers, {0: 1, 1: 0})
        take_quiz(client, quiz, user_headers, {0: 1, 1: 3})

        body = client.get("/api/analytics/me/progress", headers=user_headers).json()

        assert body["total_attempts"] == 2
        assert body["total_quizzes"] == 1
        assert body["average_score"] == 50
        assert body["strong_categories"] == ["Math"]
        assert body["weak_categories"] == ["Geography"]
        assert len(body["recent_attempts"]) == 2

    def test_empty_progress(self, client, user_headers):
        body = client.get("/api/analytics/me/progress", headers=user_headers).json()

        assert body["total_attempts"] == 0
        assert body["average_score"] == 0
        assert body["strong_categories"] == []


class TestPerformanceAnalysis:

    def test_per_category_averages(self, client, make_quiz, user_headers):
        science = make_quiz(title="Science", category="Science", questions=[
            question("Q1", correct=0), question("Q2", correct=0),
        ])
        art = make_quiz(title="Art", category="Art", questions=[question("Q1", correct=0)])

        take_quiz(client, science, user_headers, {0: 0, 1: 0})
        take_quiz(client, science, user_headers, {0: 0})
        take_quiz(client, art, user_headers, {0: 1})

        body = client.get("/api/analytics/me/performance", headers=user_headers).json()

        science_row, art_row = body["category_performance"]
        assert science_row["category"] == "Science"
        assert science_row["average_score"] == 75.0
        assert science_row["best_score"] == 100
        assert science_row["total_attempts"] == 2
        assert science_row["level"] == "moderate"
        assert art_row["level"] == "weak"
        assert body["weak_areas"] == ["Art"]
        assert body["overall_average"] == 37.5

    def test_trend(self):
        assert analytics_service._trend([90, 90, 90, 50, 50, 50]) == "up"
        assert analytics_service._trend([40, 40, 40, 80, 80, 80]) == "down"
        assert analytics_service._trend([70, 72, 68, 70, 70, 70]) == "stable"
        assert analytics_service._trend([100, 0]) == "stable"
