"""Tests for attempt history, the results view, text reports and learning plans."""

from tests.conftest import auth_headers, question, take_quiz


def replace_questions(client, quiz, headers, questions):
    response = client.patch(f"/api/quizzes/{quiz.id}", headers=headers, json={"questions": questions})
    assert response.status_code == 200


class TestAttemptHistory:

    def test_my_attempts_newest_first(self, client, make_quiz, user_headers):
        quiz = make_quiz()
        take_quiz(client, quiz, user_headers, {0: 1})
        take_quiz(client, quiz, user_headers, {0: 1, 1: 2})

        attempts = client.get("/api/attempts/me", headers=user_headers).json()

        assert [a["score"] for a in attempts] == [2, 1]
        assert attempts[0]["quiz_title"] == "General Knowledge"
        assert attempts[0]["username"] == "alice"

        per_quiz = client.get(f"/api/quizzes/{quiz.id}/attempts/me", headers=user_headers).json()
        assert len(per_quiz) == 2

    def test_quiz_results_for_admin(self, client, make_quiz, make_user, admin_headers):
        quiz = make_quiz()
        bob, carol = make_user("bob"), make_user("carol")
        take_quiz(client, quiz, auth_headers(bob), {0: 0})
        take_quiz(client, quiz, auth_headers(carol), {0: 1, 1: 2})

        results = client.get(f"/api/quizzes/{quiz.id}/results", headers=admin_headers).json()

        assert [r["username"] for r in results] == ["carol", "bob"]


class TestResultsView:

    def test_category_breakdown(self, client, make_quiz, user_headers):
        quiz = make_quiz()
        attempt_id = take_quiz(client, quiz, user_headers, {0: 1, 1: 0})["attempt_id"]

        body = client.get(f"/api/attempts/{attempt_id}/results", headers=user_headers).json()

        assert body["percentage"] == 50
        assert body["strong_categories"] == ["Math"]
        assert body["weak_categories"] == ["Geography"]
        assert [d["user_answer"] for d in body["detailed_answers"]] == [1, 0]
        assert [d["correct_answer"] for d in body["detailed_answers"]] == [1, 2]

    def test_unanswered_question_counts_as_wrong(self, client, make_quiz, user_headers):
        quiz = make_quiz()
        attempt_id = take_quiz(client, quiz, user_headers, {0: 1})["attempt_id"]

        body = client.get(f"/api/attempts/{attempt_id}/results", headers=user_headers).json()

        assert body["detailed_answers"][1]["user_answer"] is None
        assert body["detailed_answers"][1]["is_correct"] is False
        assert body["weak_categories"] == ["Geography"]

    def test_other_users_attempt_denied(self, client, make_quiz, make_user, user_headers):
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1})["attempt_id"]
        bob = make_user("bob")

        response = client.get(f"/api/attempts/{attempt_id}/results", headers=auth_headers(bob))

        assert response.status_code == 403

    def test_admin_can_view_any_attempt(self, client, make_quiz, user_headers, admin_headers):
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1})["attempt_id"]
        assert client.get(f"/api/attempts/{attempt_id}", headers=admin_headers).status_code == 200

    def test_unknown_attempt(self, client, user_headers):
        response = client.get("/api/attempts/00000000-0000-0000-0000-000000000000", headers=user_headers)
        assert response.status_code == 404


class TestResultsAfterQuizEdit:

    SAME_QUESTIONS = [
        question("What is 2 + 2?", correct=1, category="Math"),
        question("Capital of France?", correct=2, category="Geography"),
    ]

    def test_identical_questions_keep_perfect_results(self, client, make_quiz, user_headers, admin_headers):
        quiz = make_quiz()
        attempt_id = take_quiz(client, quiz, user_headers, {0: 1, 1: 2})["attempt_id"]
        replace_questions(client, quiz, admin_headers, self.SAME_QUESTIONS)

        body = client.get(f"/api/attempts/{attempt_id}/results", headers=user_headers).json()

        assert body["percentage"] == 100
        assert [(c["category"], c["percentage"]) for c in body["category_performance"]] == [
            ("Math", 100), ("Geography", 100)
        ]
        assert body["strong_categories"] == ["Math", "Geography"]
        assert body["weak_categories"] == []
        assert [d["user_answer"] for d in body["detailed_answers"]] == [1, 2]

    def test_results_show_questions_as_answered(self, client, make_quiz, user_headers, admin_headers):
        quiz = make_quiz()
        attempt_id = take_quiz(client, quiz, user_headers, {0: 1})["attempt_id"]
        replace_questions(client, quiz, admin_headers, [question("Brand new?", correct=3, category="Art")])

        body = client.get(f"/api/attempts/{attempt_id}/results", headers=user_headers).json()

        assert [d["question"] for d in body["detailed_answers"]] == ["What is 2 + 2?", "Capital of France?"]
        assert [d["user_answer"] for d in body["detailed_answers"]] == [1, None]
        assert body["strong_categories"] == ["Math"]
        assert body["weak_categories"] == ["Geography"]

    def test_report_and_plan_follow_stored_answers(self, client, make_quiz, user_headers, admin_headers):
        quiz = make_quiz()
        attempt_id = take_quiz(client, quiz, user_headers, {0: 1, 1: 2})["attempt_id"]
        replace_questions(client, quiz, admin_headers, self.SAME_QUESTIONS)

        report = client.get(f"/api/attempts/{attempt_id}/report", headers=user_headers).text
        plan = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers)

        assert "Question 1: ✓ CORRECT" in report
        assert "Question 2: ✓ CORRECT" in report
        assert "INCORRECT" not in report
        assert plan.status_code == 400


class TestReport:

    def test_report_download(self, client, make_quiz, user_headers):
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1, 1: 0})["attempt_id"]

        response = client.get(f"/api/attempts/{attempt_id}/report", headers=user_headers)

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="quiz-results-general-knowledge-')
        assert disposition.endswith('.txt"')

        text = response.text
        assert "Quiz: General Knowledge" in text
        assert "Score: 1/2 (50%)" in text
        assert "Question 2: ✗ INCORRECT" in text
        assert "Focus on improving: Geography" in text


class TestLearningPlan:

    def test_fallback_plan_without_gemini(self, client, make_quiz, user_headers):
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1, 1: 0})["attempt_id"]

        response = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["generated_by"] == "fallback"
        assert "<h3>Geography</h3>" in body["learning_plan"]
        assert [q["question"] for q in body["new_quiz_questions"]] == ["Capital of France?"]

    def test_perfect_attempt_has_nothing_to_plan(self, client, make_quiz, user_headers):
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1, 1: 2})["attempt_id"]

        response = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers)

        assert response.status_code == 400

    def test_follow_up_count_is_capped(self):
        from app.services.learning_plan_service import learning_plan_service

        assert learning_plan_service.follow_up_count(1) == 1
        assert learning_plan_service.follow_up_count(5) == 3
        assert learning_plan_service.follow_up_count(20) == 5
