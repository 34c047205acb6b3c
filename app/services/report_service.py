"""
Plain-text results report for download
"""
import re
from typing import Dict, Any

from app.models import QuizAttempt
from app.services.scoring_service import scoring_service
from app.utils.clock import ensure_utc, format_duration, utcnow


class ReportService:
    """Renders an attempt's results as a text document"""

    def filename(self, quiz_title: str) -> str:
        slug = re.sub(r"\s+", "-", quiz_title.strip()).lower()
        slug = re.sub(r"[^a-z0-9\-_]", "", slug) or "quiz"
        return f"quiz-results-{slug}-{utcnow().date().isoformat()}.txt"

    def render(self, attempt: QuizAttempt) -> str:
        results: Dict[str, Any] = scoring_service.build_results(attempt)
        performance = results["category_performance"]
        completed_at = ensure_utc(attempt.completed_at) or utcnow()

        lines = [
            "Quiz Results Report",
            "==================",
            "",
            f"Quiz: {results['quiz_title']}",
            f"Date: {completed_at.date().isoformat()}",
            f"Time Taken: {format_duration(attempt.time_taken)}",
        ]
        if attempt.auto_submitted:
            lines.append("Submitted automatically when the time limit ran out")

        lines += [
            "",
            "Overall Performance",
            "------------------",
            f"Score: {attempt.score}/{attempt.total_questions} ({results['percentage']}%)",
            "",
        ]

        if results["detailed_answers"]:
            lines += ["Detailed Question Analysis", "-------------------------"]
            for number, answer in enumerate(results["detailed_answers"], start=1):
                options = answer["options"]
                verdict = "✓ CORRECT" if answer["is_correct"] else "✗ INCORRECT"
                lines += ["", f"Question {number}: {verdict}", f"Q: {answer['question']}", f"Category: {answer['category']}"]

                user_answer = answer["user_answer"]
                if user_answer is not None and 0 <= user_answer < len(options):
                    lines.append(f"Your Answer: {options[user_answer]}")
                else:
                    lines.append("Your Answer: Not answered")

                correct = answer["correct_answer"]
                correct_text = options[correct] if 0 <= correct < len(options) else "Unknown"
                lines += [f"Correct Answer: {correct_text}", "-" * 40]

        lines += ["", "Category Performance", "-------------------"]
        for item in performance:
            lines.append(f"{item['category']}: {item['correct']}/{item['total']} ({item['percentage']}%)")

        strong = [item for item in performance if item["level"] == "strong"]
        moderate = [item for item in performance if item["level"] == "moderate"]
        weak = [item for item in performance if item["level"] == "weak"]

        for heading, items in (
            ("Strong Areas (>=80%)", strong),
            ("Moderate Areas (50-79%)", moderate),
            ("Areas for Improvement (<50%)", weak),
        ):
            lines += ["", heading, "-" * len(heading)]
            if items:
                lines += [f"• {item['category']} ({item['percentage']}%)" for item in items]
            else:
                lines.append("None identified")

        lines += ["", "Recommendations", "--------------"]
        if weak:
            lines.append(f"Focus on improving: {', '.join(item['category'] for item in weak)}")
        if moderate:
            lines.append(f"Keep practicing: {', '.join(item['category'] for item in moderate)}")
        if not weak and not moderate:
            lines.append("Great job! Keep up the excellent work across all categories.")

        return "\n".join(lines) + "\n"


# Global instance
report_service = ReportService()
