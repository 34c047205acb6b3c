"""
Question import from CSV, plain text and PDF files
"""
import csv
import io
import logging
import os
import re
import tempfile
from typing import Dict, Any, List, Optional, Tuple

import aiofiles
from fastapi import HTTPException, UploadFile

from app.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

ANSWER_LETTERS = {"a": 0, "b": 1, "c": 2, "d": 3}
ANSWER_DIGITS = {"1": 0, "2": 1, "3": 2, "4": 3}

QUESTION_LINE = re.compile(r"^\d+\.\s*")
OPTION_LINE = re.compile(r"^([A-Da-d])\)\s*")
ANSWER_LINE = re.compile(r"^answer:\s*", re.IGNORECASE)


def parse_answer_key(value: str) -> Optional[int]:
    """Map A-D (any case) or 1-4 to an option index; None when unrecognized"""
    key = (value or "").strip().lower()
    if key in ANSWER_LETTERS:
        return ANSWER_LETTERS[key]
    return ANSWER_DIGITS.get(key)


class ImportService:
    """
    Parses question files into editable question lists

    CSV format: Question,Option1,Option2,Option3,Option4,CorrectAnswer[,Category]
    Text format: "1. Question", "A) option" .. "D) option", "Answer: X"
    """

    def parse_csv(self, content: str, default_category: str = "General") -> Tuple[List[Dict[str, Any]], List[int]]:
        """
        Parse CSV content

        Returns:
            Tuple of (questions, skipped line numbers)
        """
        # Rows are numbered by the file line they start on
        reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
        rows = []
        first_line = 1
        for row in reader:
            if any(cell.strip() for cell in row):
                rows.append((first_line, row))
            first_line = reader.line_num + 1

        if rows and any("question" in cell.lower() for cell in rows[0][1]):
            rows = rows[1:]

        questions = []
        skipped = []
        for line_number, row in rows:
            columns = [cell.strip() for cell in row]
            if len(columns) < 6 or not all(columns[:5]):
                logger.warning(f"Skipping CSV row {line_number}: expected a question and four options")
                skipped.append(line_number)
                continue

            correct = parse_answer_key(columns[5])
            if correct is None:
                logger.warning(f"CSV row {line_number}: unrecognized answer '{columns[5]}', using option A")
                correct = 0

            category = columns[6] if len(columns) > 6 and columns[6] else default_category
            questions.append({
                "question": columns[0],
                "options": columns[1:5],
                "correct_answer": correct,
                "category": category
            })

        logger.info(f"Parsed {len(questions)} questions from CSV ({len(skipped)} rows skipped)")
        return questions, skipped

    def parse_text(self, text: str, default_category: str = "General") -> Tuple[List[Dict[str, Any]], List[int]]:
        """
        Parse numbered questions with lettered options

        Returns:
            Tuple of (questions, skipped question numbers); questions without
            exactly four options are skipped
        """
        questions = []
        skipped = []
        current: Optional[Dict[str, Any]] = None
        number = 0

        def flush():
            if current is None:
                return
            if len(current["options"]) == 4:
                questions.append(current)
            else:
                logger.warning(f"Skipping question {number}: found {len(current['options'])} options")
                skipped.append(number)

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            if QUESTION_LINE.match(line):
                flush()
                number += 1
                current = {
                    "question": QUESTION_LINE.sub("", line),
                    "options": [],
                    "correct_answer": 0,
                    "category": default_category
                }
            elif current is not None and OPTION_LINE.match(line):
                current["options"].append(OPTION_LINE.sub("", line))
            elif current is not None and ANSWER_LINE.match(line):
                value = ANSWER_LINE.sub("", line)
                correct = parse_answer_key(value[:1])
                if correct is None:
                    logger.warning(f"Question {number}: unrecognized answer '{value}', using option A")
                    correct = 0
                current["correct_answer"] = correct

        flush()

        logger.info(f"Parsed {len(questions)} questions from text ({len(skipped)} skipped)")
        return questions, skipped

    async def read_upload(self, file: UploadFile) -> str:
        content = await file.read()
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    async def preview_csv(self, file: UploadFile, category: str) -> Dict[str, Any]:
        if not (file.filename or "").lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail="Only CSV files are allowed")

        questions, skipped = self.parse_csv(await self.read_upload(file), category)
        return {"filename": file.filename, "questions": questions, "skipped_rows": skipped}

    async def preview_document(self, file: UploadFile, category: str) -> Dict[str, Any]:
        """Preview questions from a .txt file, or from a PDF through Gemini"""
        filename = file.filename or ""
        lowered = filename.lower()

        if lowered.endswith(".txt"):
            text = await self.read_upload(file)
        elif lowered.endswith(".pdf"):
            text = await self._extract_pdf_text(file)
        else:
            raise HTTPException(status_code=400, detail="Only PDF and TXT files are allowed")

        questions, skipped = self.parse_text(text, category)
        return {
            "filename": filename,
            "questions": questions,
            "skipped_rows": skipped,
            "extracted_text": text
        }

    async def _extract_pdf_text(self, file: UploadFile) -> str:
        if not gemini_service.available:
            raise HTTPException(status_code=503, detail="PDF extraction is not available: GEMINI_API_KEY is not configured")

        fd, temp_path = tempfile.mkstemp(suffix=".pdf")
        os.close(fd)
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                content = await file.read()
                await f.write(content)

            logger.info(f"Extracting questions from PDF: {file.filename}")
            return gemini_service.extract_questions_text(temp_path, display_name=file.filename or "quiz.pdf")

        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=502, detail=f"Failed to process PDF: {str(e)}")
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)


# Global instance
import_service = ImportService()
