"""Tests for percentages, category levels and grading."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.services.scoring_service import scoring_service, round_half_up


def make_question(correct, category="General"):
    return SimpleNamespace(
        id=uuid4(),
        question="Q?",
        options=["a", "b", "c", "d"],
        correct_answer=correct,
        category=category,
    )


class TestPercentage:

    def test_zero_total_is_zero(self):
        assert scoring_service.percentage(0, 0) == 0

    def test_rounds_half_up(self):
        # 1/8 = 12.5%
        assert scoring_service.percentage(1, 8) == 13
        assert round_half_up(2.5) == 3

    def test_two_thirds(self):
        assert scoring_service.percentage(2, 3) == 67


class TestCategoryLevel:

    @pytest.mark.parametrize("pct,level", [
        (100, "strong"), (80, "strong"), (79, "moderate"),
        (50, "moderate"), (49, "weak"), (0, "weak"),
    ])
    def test_thresholds(self, pct, level):
        assert scoring_service.category_level(pct) == level


class TestGrading:

    def test_all_correct_scores_full_marks(self):
        questions = [make_question(i % 4) for i in range(5)]
        selections = {str(i): q.correct_answer for i, q in enumerate(questions)}

        score, answers = scoring_service.grade_answers(questions, selections)

        assert score == 5
        assert scoring_service.percentage(score, len(questions)) == 100
        assert all(a["is_correct"] for a in answers)

    def test_unanswered_questions_are_recorded_as_unanswered(self):
        questions = [make_question(0), make_question(1), make_question(2)]

        score, answers = scoring_service.grade_answers(questions, {"1": 1})

        assert score == 1
        assert [a["question_id"] for a in answers] == [str(q.id) for q in questions]
        assert [a["selected_answer"] for a in answers] == [None, 1, None]
        assert [a["is_correct"] for a in answers] == [False, True, False]

    def test_category_performance_counts_unanswered_against_category(self):
        questions = [make_question(0, "Math"), make_question(1, "Math"), make_question(2, "Art")]
        _, answers = scoring_service.grade_answers(questions, {"0": 0, "2": 2})

        performance = scoring_service.category_performance(answers)

        assert performance == [
            {"category": "Math", "correct": 1, "total": 2, "percentage": 50, "level": "moderate"},
            {"category": "Art", "correct": 1, "total": 1, "percentage": 100, "level": "strong"},
        ]

    def test_parse_answers_accepts_json_strings(self):
        raw = '[{"question_id": "x", "selected_answer": 1, "is_correct": true, "category": "A"}]'
        assert scoring_service.parse_answers(raw)[0]["selected_answer"] == 1
        assert scoring_service.parse_answers("not json") == []
        assert scoring_service.parse_answers(None) == []


class TestCompleteAnswers:

    def test_stored_question_data_wins_over_current_questions(self):
        graded_on = [make_question(1, "Math"), make_question(2, "Geography")]
        _, answers = scoring_service.grade_answers(graded_on, {"0": 1, "1": 2})
        current = [make_question(0, "Art")]

        completed = scoring_service.complete_answers(answers, current, 2)

        assert completed == answers
        assert scoring_service.split_levels(scoring_service.category_performance(completed))["strong"] == [
            "Math", "Geography"
        ]

    def test_answers_without_question_id_match_by_position(self):
        questions = [make_question(0), make_question(1)]
        answers = [{"selected_answer": 0, "is_correct": True}, {"selected_answer": 3, "is_correct": False}]

        detailed = scoring_service.detailed_answers(scoring_service.complete_answers(answers, questions, 2))

        assert [d["user_answer"] for d in detailed] == [0, 3]
        assert [d["is_correct"] for d in detailed] == [True, False]
        assert [d["correct_answer"] for d in detailed] == [0, 1]

    def test_older_rows_get_unanswered_questions_back_in_order(self):
        questions = [make_question(0, "Math"), make_question(1, "Art"), make_question(2, "Math")]
        answers = [{"question_id": str(questions[2].id), "selected_answer": 2, "is_correct": True, "category": "Math"}]

        completed = scoring_service.complete_answers(answers, questions, 3)

        assert [a["selected_answer"] for a in completed] == [None, None, 2]
        assert [a["is_correct"] for a in completed] == [False, False, True]
        assert completed[2]["question"] == "Q?"

    def test_unmatched_answer_without_question_data_is_left_out(self):
        answers = [{"question_id": "gone", "selected_answer": 1, "is_correct": True}]

        assert scoring_service.complete_answers(answers, [make_question(0)], 1) == []
