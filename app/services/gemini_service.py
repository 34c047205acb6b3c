"""
Gemini AI service for PDF question extraction and learning plans
"""
import google.generativeai as genai
from app.config import settings
import json
import re
import logging
from typing import List, Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)


class GeminiUnavailableError(RuntimeError):
    """Raised when no Gemini API key is configured"""


class GeminiService:
    """Service for all Gemini AI operations"""

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        self.model = None
        api_key = api_key or settings.GEMINI_API_KEY
        if not api_key:
            logger.info("GEMINI_API_KEY not set. PDF extraction and AI learning plans disabled.")
            return

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name or settings.GEMINI_MODEL)

    @property
    def available(self) -> bool:
        return self.model is not None

    def _require_model(self):
        if not self.model:
            raise GeminiUnavailableError("Gemini is not configured")
        return self.model

    @staticmethod
    def _strip_code_fence(text: str) -> str:
        cleaned = re.sub(r"^```[A-Za-z]*", "", text.strip())
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        return cleaned.strip()

    def extract_questions_text(self, file_path: str, display_name: str) -> str:
        """
        Upload a PDF to the Gemini File API and extract its questions as text

        Args:
            file_path: Path to PDF file
            display_name: Display name for the file

        Returns:
            Questions in the numbered text format understood by the text importer
        """
        model = self._require_model()

        try:
            uploaded_file = genai.upload_file(path=file_path, display_name=display_name)
            logger.info(f"Uploaded file to Gemini: {uploaded_file.name}")

            prompt = """
            Extract every multiple choice question from this document.
            Return ONLY plain text in exactly this format, one blank line between questions:

            1. Question text?
            A) First option
            B) Second option
            C) Third option
            D) Fourth option
            Answer: C

            Use the answer key from the document when it has one. When it does
            not, choose the correct option yourself. No markdown, no preamble.
            """

            response = model.generate_content([uploaded_file, prompt])
            return self._strip_code_fence(response.text)

        except Exception as e:
            logger.error(f"Failed to extract questions from PDF: {str(e)}")
            raise

    def generate_learning_plan(self, incorrect_questions: List[str], question_count: int) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Generate an HTML learning plan and follow-up questions for missed questions

        Args:
            incorrect_questions: Text of each question answered incorrectly
            question_count: Number of follow-up questions to generate

        Returns:
            Tuple of (learning plan HTML, follow-up question dicts); the
            question list is empty when the model's JSON could not be used
        """
        model = self._require_model()

        numbered = "\n".join(f"{index}. {text}" for index, text in enumerate(incorrect_questions, start=1))
        plan_prompt = f"""
You are an educational AI assistant. A student answered the following quiz questions incorrectly.
Generate a detailed learning plan with explanations for each topic covered in these questions.

Incorrect Questions:
{numbered}

Please provide:
1. A detailed explanation for each topic covered in the questions
2. Key concepts and definitions
3. Examples to illustrate the concepts
4. Tips for better understanding

Format your response as clean, semantic HTML that can be inserted directly into a web page.
Use <h2> for main topics, <h3> for subtopics, <p>, <ul>, <li>, <strong>, <em>, <blockquote> and <code>.
Do NOT include CSS classes, a <html> or <body> element, or markdown code fences.
"""

        try:
            learning_plan = self._strip_code_fence(model.generate_content(plan_prompt).text)
        except Exception as e:
            logger.error(f"Failed to generate learning plan: {str(e)}")
            raise

        quiz_prompt = f"""
Based on the following learning content, generate {question_count} multiple-choice quiz questions
that test understanding of the key concepts covered.

Learning Content:
{learning_plan}

Requirements:
- Create exactly {question_count} questions based ONLY on the provided learning content
- Provide exactly 4 options for each question
- Give the correct answer as a 0-indexed integer (0, 1, 2, or 3)

Return ONLY valid JSON in this exact format (no markdown, no preamble):
{{"quiz": [{{"question": "...", "options": ["...", "...", "...", "..."], "correct_answer": 0}}]}}
"""

        try:
            response = model.generate_content(quiz_prompt)
            questions = self._parse_quiz_response(response.text)
        except Exception as e:
            logger.warning(f"Failed to generate follow-up questions: {str(e)}")
            questions = []

        return learning_plan, questions[:question_count]

    def _parse_quiz_response(self, response_text: str) -> List[Dict[str, Any]]:
        """Parse Gemini's follow-up quiz JSON, dropping malformed questions"""
        try:
            parsed = json.loads(self._strip_code_fence(response_text))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse quiz JSON: {str(e)}")
            logger.error(f"Response text: {response_text[:500]}")
            return []

        items = parsed.get("quiz", []) if isinstance(parsed, dict) else parsed
        if not isinstance(items, list):
            return []

        questions = []
        for item in items:
            if not isinstance(item, dict):
                continue
            options = item.get("options")
            correct = item.get("correct_answer")
            if (
                item.get("question")
                and isinstance(options, list) and len(options) == 4
                and isinstance(correct, int) and 0 <= correct <= 3
            ):
                questions.append({
                    "question": str(item["question"]),
                    "options": [str(option) for option in options],
                    "correct_answer": correct
                })
            else:
                logger.warning("Skipping malformed generated question")

        return questions


# Global instance
gemini_service = GeminiService()
