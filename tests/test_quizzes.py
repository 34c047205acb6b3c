"""Tests for quiz authoring, browsing, availability and favorites."""

from datetime import timedelta

import pytest

from app.utils.clock import utcnow
from tests.conftest import question


def quiz_payload(**overrides):
    payload = {
        "title": "Science",
        "description": "Basics",
        "category": "Science",
        "time_limit": 10,
        "questions": [question("Water boils at?", correct=3), question("H2O is?", correct=0)],
    }
    payload.update(overrides)
    return payload


class TestCreateQuiz:

    def test_admin_creates_quiz(self, client, admin_headers):
        response = client.post("/api/quizzes/", json=quiz_payload(), headers=admin_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["question_count"] == 2
        assert [q["position"] for q in body["questions"]] == [0, 1]
        # Question category falls back to the quiz category
        assert body["questions"][0]["category"] == "Science"

    def test_user_cannot_create(self, client, user_headers):
        response = client.post("/api/quizzes/", json=quiz_payload(), headers=user_headers)
        assert response.status_code == 403

    def test_blank_title_rejected(self, client, admin_headers):
        response = client.post("/api/quizzes/", json=quiz_payload(title="   "), headers=admin_headers)
        assert response.status_code == 422

    def test_requires_questions(self, client, admin_headers):
        response = client.post("/api/quizzes/", json=quiz_payload(questions=[]), headers=admin_headers)
        assert response.status_code == 422

    def test_requires_four_options(self, client, admin_headers):
        bad = {"question": "Q?", "options": ["a", "b", "c"], "correct_answer": 0}
        response = client.post("/api/quizzes/", json=quiz_payload(questions=[bad]), headers=admin_headers)
        assert response.status_code == 422

    def test_blank_option_rejected(self, client, admin_headers):
        bad = {"question": "Q?", "options": ["a", "b", " ", "d"], "correct_answer": 0}
        response = client.post("/api/quizzes/", json=quiz_payload(questions=[bad]), headers=admin_headers)
        assert response.status_code == 422

    def test_correct_answer_out_of_range(self, client, admin_headers):
        bad = {"question": "Q?", "options": ["a", "b", "c", "d"], "correct_answer": 4}
        response = client.post("/api/quizzes/", json=quiz_payload(questions=[bad]), headers=admin_headers)
        assert response.status_code == 422

    def test_time_limit_must_be_positive(self, client, admin_headers):
        response = client.post("/api/quizzes/", json=quiz_payload(time_limit=0), headers=admin_headers)
        assert response.status_code == 422


class TestBrowseQuizzes:

    def test_scheduled_quiz_hidden_from_users(self, client, make_quiz, user_headers, admin_headers):
        make_quiz(title="Open now")
        make_quiz(title="Later", start_time=utcnow() + timedelta(days=1))

        user_titles = [q["title"] for q in client.get("/api/quizzes/", headers=user_headers).json()]
        admin_titles = [q["title"] for q in client.get("/api/quizzes/", headers=admin_headers).json()]

        assert user_titles == ["Open now"]
        assert sorted(admin_titles) == ["Later", "Open now"]

    def test_search_and_sort(self, client, make_quiz, user_headers):
        make_quiz(title="Zoology", category="Biology")
        make_quiz(title="Algebra", category="Math")
        make_quiz(title="Botany", category="Biology", description="plants")

        by_title = client.get("/api/quizzes/?sort_by=title", headers=user_headers).json()
        assert [q["title"] for q in by_title] == ["Algebra", "Botany", "Zoology"]

        latest = client.get("/api/quizzes/", headers=user_headers).json()
        assert latest[0]["title"] == "Botany"

        found = client.get("/api/quizzes/?search=PLANTS", headers=user_headers).json()
        assert [q["title"] for q in found] == ["Botany"]

        biology = client.get("/api/quizzes/?category=Biology", headers=user_headers).json()
        assert {q["title"] for q in biology} == {"Zoology", "Botany"}

    def test_invalid_sort_rejected(self, client, user_headers):
        assert client.get("/api/quizzes/?sort_by=random", headers=user_headers).status_code == 422

    def test_categories(self, client, make_quiz, user_headers):
        make_quiz(category="Math")
        make_quiz(category="Art")
        make_quiz(category="Math")

        assert client.get("/api/quizzes/categories", headers=user_headers).json() == ["Art", "Math"]


class TestQuizDetail:

    def test_users_do_not_see_answers(self, client, make_quiz, user_headers):
        quiz = make_quiz()

        body = client.get(f"/api/quizzes/{quiz.id}", headers=user_headers).json()

        assert body["questions"] is None
        assert body["question_count"] == 2
        assert body["availability"]["can_start"] is True

    def test_admins_see_answers(self, client, make_quiz, admin_headers):
        quiz = make_quiz()

        body = client.get(f"/api/quizzes/{quiz.id}", headers=admin_headers).json()

        assert body["questions"][0]["correct_answer"] == 1

    def test_unknown_quiz(self, client, user_headers):
        response = client.get("/api/quizzes/00000000-0000-0000-0000-000000000000", headers=user_headers)
        assert response.status_code == 404

    def test_scheduled_quiz_not_visible_to_users(self, client, make_quiz, user_headers):
        quiz = make_quiz(start_time=utcnow() + timedelta(hours=2))
        assert client.get(f"/api/quizzes/{quiz.id}", headers=user_headers).status_code == 404


class TestUpdateAndDelete:

    def test_update_replaces_questions(self, client, make_quiz, admin_headers):
        quiz = make_quiz()

        response = client.patch(f"/api/quizzes/{quiz.id}", headers=admin_headers, json={
            "title": "Renamed",
            "questions": [question("Only one?", correct=2)],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Renamed"
        assert body["question_count"] == 1

    @pytest.mark.parametrize("body,field", [
        ({"title": None}, "title"),
        ({"category": None}, "category"),
        ({"description": None}, "description"),
        ({"title": "   "}, "title"),
    ])
    def test_update_rejects_null_or_blank_fields(self, client, make_quiz, admin_headers, body, field):
        quiz = make_quiz()

        response = client.patch(f"/api/quizzes/{quiz.id}", headers=admin_headers, json=body)

        assert response.status_code == 422
        assert response.json()["message"].startswith(f"{field}:")
        assert client.get(f"/api/quizzes/{quiz.id}", headers=admin_headers).json()["title"] == "General Knowledge"

    def test_update_strips_title(self, client, make_quiz, admin_headers):
        quiz = make_quiz()

        response = client.patch(f"/api/quizzes/{quiz.id}", headers=admin_headers, json={"title": "  Renamed  "})

        assert response.json()["title"] == "Renamed"

    def test_delete(self, client, make_quiz, admin_headers):
        quiz = make_quiz()

        assert client.delete(f"/api/quizzes/{quiz.id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/quizzes/{quiz.id}", headers=admin_headers).status_code == 404


class TestFavorites:

    def test_add_list_remove(self, client, make_quiz, user_headers):
        quiz = make_quiz()
        make_quiz(title="Other")

        assert client.post(f"/api/quizzes/{quiz.id}/favorite", headers=user_headers).status_code == 204
        # Adding twice is harmless
        assert client.post(f"/api/quizzes/{quiz.id}/favorite", headers=user_headers).status_code == 204

        favorites = client.get("/api/quizzes/favorites", headers=user_headers).json()
        assert [f["id"] for f in favorites] == [str(quiz.id)]
        assert client.get(f"/api/quizzes/{quiz.id}", headers=user_headers).json()["is_favorite"] is True

        client.delete(f"/api/quizzes/{quiz.id}/favorite", headers=user_headers)
        assert client.get("/api/quizzes/favorites", headers=user_headers).json() == []
