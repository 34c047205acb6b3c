"""
Personalized learning plans from an attempt's incorrect answers
"""
import html
import logging
import math
from typing import Dict, Any, List

from fastapi import HTTPException

from app.models import QuizAttempt
from app.services.gemini_service import gemini_service
from app.services.scoring_service import scoring_service

logger = logging.getLogger(__name__)

MAX_FOLLOW_UP_QUESTIONS = 5

# Used when the model returns no usable follow-up questions
STUDY_HABIT_QUESTIONS = [
    {
        "question": "Which of these is a good study habit?",
        "options": [
            "Review material regularly and take practice tests",
            "Only study the night before an exam",
            "Memorize without understanding concepts",
            "Skip reviewing incorrect answers"
        ],
        "correct_answer": 0
    },
    {
        "question": "What is the best approach when you make mistakes on a quiz?",
        "options": [
            "Ignore them and move on",
            "Analyze the mistakes and understand the concepts",
            "Just memorize the correct answers",
            "Avoid similar topics in the future"
        ],
        "correct_answer": 1
    },
    {
        "question": "How should you approach learning new concepts?",
        "options": [
            "Rush through to cover more material",
            "Focus only on memorization",
            "Take time to understand and practice applications",
            "Skip the difficult parts"
        ],
        "correct_answer": 2
    },
]


class LearningPlanService:
    """Builds learning plans with Gemini, or deterministically without it"""

    def follow_up_count(self, incorrect: int) -> int:
        return min(math.ceil(incorrect / 2), MAX_FOLLOW_UP_QUESTIONS)

    def incorrect_answers(self, attempt: QuizAttempt) -> List[Dict[str, Any]]:
        results = scoring_service.build_results(attempt)
        return [answer for answer in results["detailed_answers"] if not answer["is_correct"]]

    def generate(self, attempt: QuizAttempt) -> Dict[str, Any]:
        """
        Learning plan for an attempt

        Raises:
            HTTPException: 400 when the attempt has no incorrect answers
        """
        missed = self.incorrect_answers(attempt)
        if not missed:
            raise HTTPException(status_code=400, detail="No incorrect answers to build a learning plan from")

        count = self.follow_up_count(len(missed))

        if gemini_service.available:
            try:
                plan, questions = gemini_service.generate_learning_plan(
                    [answer["question"] for answer in missed], count
                )
                if not questions:
                    questions = STUDY_HABIT_QUESTIONS[:count]
                logger.info(f"Generated learning plan for attempt {attempt.id} ({len(missed)} missed)")
                return {"learning_plan": plan, "new_quiz_questions": questions, "generated_by": "gemini"}
            except Exception as e:
                logger.error(f"Gemini learning plan failed for attempt {attempt.id}: {str(e)}")

        return self._fallback(missed, count)

    def _fallback(self, missed: List[Dict[str, Any]], count: int) -> Dict[str, Any]:
        """Plan built from the missed questions themselves"""
        by_category: Dict[str, List[Dict[str, Any]]] = {}
        for answer in missed:
            by_category.setdefault(answer["category"], []).append(answer)

        parts = ["<h2>Your Learning Plan</h2>",
                 f"<p>You missed <strong>{len(missed)}</strong> question(s). Review each concept below, then try the practice questions.</p>"]
        for category, answers in by_category.items():
            parts.append(f"<h3>{html.escape(category)}</h3>")
            parts.append("<ul>")
            for answer in answers:
                options = answer["options"]
                correct = answer["correct_answer"]
                correct_text = options[correct] if 0 <= correct < len(options) else ""
                parts.append(
                    f"<li><strong>{html.escape(answer['question'])}</strong>"
                    f"<p>Correct answer: <em>{html.escape(correct_text)}</em></p></li>"
                )
            parts.append("</ul>")
        parts.append("<blockquote>Revisit these topics and retake the quiz in practice mode to check your progress.</blockquote>")

        questions = [
            {
                "question": answer["question"],
                "options": list(answer["options"]),
                "correct_answer": answer["correct_answer"]
            }
            for answer in missed[:count]
        ]

        return {"learning_plan": "\n".join(parts), "new_quiz_questions": questions, "generated_by": "fallback"}


# Global instance
learning_plan_service = LearningPlanService()
