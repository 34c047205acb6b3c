"""
Quiz scoring service
Answer grading, percentages and category breakdowns shared by results,
reports, dashboards and analytics
"""
import json
import logging
import math
from collections import OrderedDict
from typing import Dict, Any, List, Optional, Sequence, Tuple

from app.models import Question, QuizAttempt
from app.utils.clock import ensure_utc

logger = logging.getLogger(__name__)

STRONG_THRESHOLD = 80
MODERATE_THRESHOLD = 50
DEFAULT_CATEGORY = "General"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up"""
    return int(math.floor(value + 0.5))


class ScoringService:
    """
    Service for scoring attempts

    Category levels used everywhere:
    - strong: percentage >= 80
    - moderate: 50 <= percentage < 80
    - weak: percentage < 50
    """

    def percentage(self, score: float, total: float) -> int:
        """Score as a whole-number percentage of total"""
        if not total:
            return 0
        return round_half_up(score / total * 100)

    def category_level(self, percentage: float) -> str:
        if percentage >= STRONG_THRESHOLD:
            return "strong"
        if percentage >= MODERATE_THRESHOLD:
            return "moderate"
        return "weak"

    def _answer_entry(self, question: Question, selected: Optional[int]) -> Dict[str, Any]:
        """UserAnswer dict carrying the question as it was when graded"""
        return {
            "question_id": str(question.id),
            "selected_answer": selected,
            "is_correct": selected is not None and selected == question.correct_answer,
            "category": question.category or DEFAULT_CATEGORY,
            "question": question.question,
            "options": list(question.options),
            "correct_answer": question.correct_answer
        }

    def grade_answers(
        self,
        questions: Sequence[Question],
        selections: Dict[Any, int]
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """
        Grade recorded selections against the quiz questions

        Args:
            questions: Questions in quiz order
            selections: {question index: selected option}; keys may be str or int

        Returns:
            Tuple of (score, answers) where answers hold one UserAnswer dict
            per question in quiz order; unanswered questions have a
            selected_answer of None
        """
        normalized = {int(index): int(selected) for index, selected in (selections or {}).items()}

        answers = [
            self._answer_entry(question, normalized.get(index))
            for index, question in enumerate(questions)
        ]
        score = sum(1 for answer in answers if answer["is_correct"])

        logger.debug(f"Graded {len(normalized)}/{len(questions)} answered questions, score {score}")

        return score, answers

    def parse_answers(self, raw: Any) -> List[Dict[str, Any]]:
        """Attempt answers are JSON; older rows stored them as a JSON string"""
        if raw is None:
            return []
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Attempt answers are not valid JSON; treating as empty")
                return []
        return [a for a in raw if isinstance(a, dict)] if isinstance(raw, list) else []

    @staticmethod
    def _has_question_data(answer: Dict[str, Any]) -> bool:
        return all(answer.get(key) is not None for key in ("question", "options", "correct_answer"))

    def complete_answers(
        self,
        answers: List[Dict[str, Any]],
        questions: Sequence[Question],
        total: int
    ) -> List[Dict[str, Any]]:
        """
        Stored answers with their question data filled in

        Attempts keep every question with its text, options and correct
        answer, so they are used as they are. Older rows only kept the
        answered questions, some without question data; those are matched to
        the quiz's current questions by id, or by position when they have no
        id. If every match is still in the quiz, its unanswered questions are
        added back in quiz order.
        """
        by_id = {str(question.id): question for question in questions}
        completed = []
        dropped = False
        for position, answer in enumerate(answers):
            if self._has_question_data(answer):
                completed.append(answer)
                continue

            question = by_id.get(str(answer.get("question_id")))
            if question is None and not answer.get("question_id") and position < len(questions):
                question = questions[position]
            if question is None:
                logger.warning(f"No question data for answer to {answer.get('question_id')}; leaving it out")
                dropped = True
                continue

            completed.append({
                **answer,
                "question_id": str(question.id),
                "category": answer.get("category") or question.category or DEFAULT_CATEGORY,
                "question": question.question,
                "options": list(question.options),
                "correct_answer": question.correct_answer
            })

        if not dropped and len(completed) < total and len(questions) == total:
            answered = {str(answer.get("question_id")): answer for answer in completed}
            if set(answered) <= set(by_id):
                completed = [
                    answered.get(str(question.id)) or self._answer_entry(question, None)
                    for question in questions
                ]

        return completed

    def category_performance(self, answers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Correct/total and percentage per answer category, in first-seen order"""
        stats: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
        for answer in answers:
            bucket = stats.setdefault(answer.get("category") or DEFAULT_CATEGORY, {"correct": 0, "total": 0})
            bucket["total"] += 1
            if answer.get("is_correct"):
                bucket["correct"] += 1

        performance = []
        for category, bucket in stats.items():
            pct = self.percentage(bucket["correct"], bucket["total"])
            performance.append({
                "category": category,
                "correct": bucket["correct"],
                "total": bucket["total"],
                "percentage": pct,
                "level": self.category_level(pct)
            })

        return performance

    def detailed_answers(self, answers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Per-question view of what the user picked against the right option"""
        return [
            {
                "question": answer.get("question") or "",
                "options": answer.get("options") or [],
                "user_answer": answer.get("selected_answer"),
                "correct_answer": answer.get("correct_answer", 0),
                "is_correct": bool(answer.get("is_correct")),
                "category": answer.get("category") or DEFAULT_CATEGORY
            }
            for answer in answers
        ]

    def split_levels(self, performance: List[Dict[str, Any]]) -> Dict[str, List[str]]:
        levels = {"strong": [], "moderate": [], "weak": []}
        for item in performance:
            levels[item["level"]].append(item["category"])
        return levels

    def attempt_to_dict(self, attempt: QuizAttempt, include_quiz: bool = True) -> Dict[str, Any]:
        """Attempt row as an AttemptResponse payload"""
        data = {
            "id": attempt.id,
            "user_id": attempt.user_id,
            "quiz_id": attempt.quiz_id,
            "score": attempt.score,
            "total_questions": attempt.total_questions,
            "percentage": self.percentage(attempt.score, attempt.total_questions),
            "time_taken": attempt.time_taken or 0,
            "auto_submitted": bool(attempt.auto_submitted),
            "completed_at": ensure_utc(attempt.completed_at),
        }
        if include_quiz and attempt.quiz is not None:
            data["quiz_title"] = attempt.quiz.title
            data["quiz_category"] = attempt.quiz.category
        if attempt.user is not None:
            data["username"] = attempt.user.username
        return data

    def build_results(self, attempt: QuizAttempt) -> Dict[str, Any]:
        """
        Assemble the results view for an attempt

        Built from the questions stored with the attempt, so later edits to
        the quiz do not change it. Unanswered questions count against their
        category.
        """
        quiz = attempt.quiz
        questions = list(quiz.questions) if quiz is not None else []
        answers = self.complete_answers(self.parse_answers(attempt.answers), questions, attempt.total_questions)

        performance = self.category_performance(answers)
        levels = self.split_levels(performance)

        return {
            "attempt": self.attempt_to_dict(attempt),
            "quiz_title": quiz.title if quiz is not None else "Deleted quiz",
            "percentage": self.percentage(attempt.score, attempt.total_questions),
            "category_performance": performance,
            "strong_categories": levels["strong"],
            "moderate_categories": levels["moderate"],
            "weak_categories": levels["weak"],
            "detailed_answers": self.detailed_answers(answers)
        }


# Global instance
scoring_service = ScoringService()
