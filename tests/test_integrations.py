"""Tests for the Gemini and email integrations with their clients replaced."""

import asyncio
from types import SimpleNamespace

import pytest

from app.services.email_service import email_service
from app.services.gemini_service import GeminiService, GeminiUnavailableError, gemini_service
from tests.conftest import take_quiz


class FakeModel:
    """Returns canned responses in call order"""

    def __init__(self, *texts):
        self.texts = list(texts)
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        return SimpleNamespace(text=self.texts.pop(0))


class TestGeminiParsing:

    def test_strips_code_fences(self):
        assert GeminiService._strip_code_fence('```json\n{"quiz": []}\n```') == '{"quiz": []}'
        assert GeminiService._strip_code_fence("```\n<h2>x</h2>```") == "<h2>x</h2>"

    def test_drops_malformed_questions(self):
        service = GeminiService()
        text = """{"quiz": [
            {"question": "Good?", "options": ["a", "b", "c", "d"], "correct_answer": 2},
            {"question": "Three options?", "options": ["a", "b", "c"], "correct_answer": 0},
            {"question": "Bad index?", "options": ["a", "b", "c", "d"], "correct_answer": 4}
        ]}"""

        assert service._parse_quiz_response(text) == [
            {"question": "Good?", "options": ["a", "b", "c", "d"], "correct_answer": 2}
        ]
        assert service._parse_quiz_response("not json") == []

    def test_unconfigured_service_refuses(self):
        service = GeminiService()

        assert service.available is False
        with pytest.raises(GeminiUnavailableError):
            service.generate_learning_plan(["Q?"], 1)


class TestGeminiLearningPlan:

    def test_plan_from_model(self, client, make_quiz, user_headers, monkeypatch):
        model = FakeModel(
            "```html\n<h2>Geography</h2>```",
            '{"quiz": [{"question": "Capital of Spain?", "options": ["Madrid", "Rome", "Oslo", "Bern"], "correct_answer": 0}]}',
        )
        monkeypatch.setattr(gemini_service, "model", model)
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 1, 1: 0})["attempt_id"]

        body = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers).json()

        assert body["generated_by"] == "gemini"
        assert body["learning_plan"] == "<h2>Geography</h2>"
        assert body["new_quiz_questions"][0]["question"] == "Capital of Spain?"
        assert "Capital of France?" in model.prompts[0]

    def test_unusable_questions_fall_back_to_study_habits(self, client, make_quiz, user_headers, monkeypatch):
        monkeypatch.setattr(gemini_service, "model", FakeModel("<h2>Plan</h2>", "no json here"))
        attempt_id = take_quiz(client, make_quiz(), user_headers, {})["attempt_id"]

        body = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers).json()

        assert body["learning_plan"] == "<h2>Plan</h2>"
        assert body["new_quiz_questions"][0]["question"] == "Which of these is a good study habit?"

    def test_model_failure_uses_fallback_plan(self, client, make_quiz, user_headers, monkeypatch):
        class BrokenModel:
            def generate_content(self, prompt):
                raise RuntimeError("quota exceeded")

        monkeypatch.setattr(gemini_service, "model", BrokenModel())
        attempt_id = take_quiz(client, make_quiz(), user_headers, {0: 0})["attempt_id"]

        body = client.post(f"/api/attempts/{attempt_id}/learning-plan", headers=user_headers).json()

        assert body["generated_by"] == "fallback"


class TestPasswordResetEmail:

    def test_reset_link(self, monkeypatch):
        sent = []

        async def capture(message):
            sent.append(message)

        monkeypatch.setattr(email_service.mailer, "send_message", capture)

        ok = asyncio.run(email_service.send_password_reset("alice@example.com", "alice", "tok123", migrated=True))

        assert ok is True
        assert sent[0].recipients[0].email == "alice@example.com"
        assert "/reset-password?token=tok123" in sent[0].body
        assert "upgraded" in sent[0].body

    def test_send_failure_is_reported(self, monkeypatch):
        async def fail(message):
            raise ConnectionRefusedError("smtp down")

        monkeypatch.setattr(email_service.mailer, "send_message", fail)

        assert asyncio.run(email_service.send(["bob@example.com"], "Hi", "<p>x</p>")) is False
