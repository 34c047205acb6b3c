"""Tests for CSV and text question import."""

from app.services.import_service import import_service, parse_answer_key


CSV_CONTENT = """Question,Option1,Option2,Option3,Option4,CorrectAnswer,Category
What is 2 + 2?,3,4,5,6,B,Math
Capital of France?,London,Berlin,Paris,Madrid,3,Geography
Too short,a,b
Largest planet?,Mars,Jupiter,Venus,Earth,d
Odd answer?,w,x,y,z,Q,Misc
"""

TEXT_CONTENT = """
1. What is the capital of France?
A) London
B) Berlin
C) Paris
D) Madrid
Answer: C

2. Which planet is known as the Red Planet?
A) Venus
B) Mars
Answer: B

3. What is 2 + 2?
A) 3
B) 4
C) 5
D) 6
Answer: b
"""


class TestAnswerKeys:

    def test_letters_and_digits(self):
        assert [parse_answer_key(k) for k in ("A", "b", "C", "d")] == [0, 1, 2, 3]
        assert [parse_answer_key(k) for k in ("1", "2", "3", "4")] == [0, 1, 2, 3]
        assert parse_answer_key("E") is None


class TestCsvParsing:

    def test_parses_rows_and_skips_short_ones(self):
        questions, skipped = import_service.parse_csv(CSV_CONTENT, "General")

        assert len(questions) == 4
        assert skipped == [4]
        assert questions[0]["correct_answer"] == 1
        assert questions[1]["correct_answer"] == 2
        assert questions[2]["correct_answer"] == 3

    def test_missing_category_uses_default(self):
        questions, _ = import_service.parse_csv(CSV_CONTENT, "General")
        assert questions[2]["category"] == "General"
        assert questions[0]["category"] == "Math"

    def test_unrecognized_answer_maps_to_first_option(self):
        questions, _ = import_service.parse_csv(CSV_CONTENT, "General")
        assert questions[3]["correct_answer"] == 0

    def test_without_header_row(self):
        questions, skipped = import_service.parse_csv("Q1?,a,b,c,d,A\n", "Quiz")
        assert len(questions) == 1
        assert skipped == []
        assert questions[0]["category"] == "Quiz"

    def test_skipped_rows_keep_file_line_numbers_after_blank_lines(self):
        content = "Question,A,B,C,D,Answer\n\nQ1?,a,b,c,d,A\n\n\nToo short,a\nQ2?,a,b,c,d,B\n"

        questions, skipped = import_service.parse_csv(content, "General")

        assert len(questions) == 2
        assert skipped == [6]

    def test_multiline_cell_numbered_by_its_first_line(self):
        content = 'Q1?,a,b,c,d,A\n"Spans\ntwo lines",a\nQ2?,a,b,c,d,B\n'

        _, skipped = import_service.parse_csv(content, "General")

        assert skipped == [2]

    def test_quoted_fields_with_commas(self):
        content = '"Pick one, please",a,"b, c",d,e,2\n'
        questions, _ = import_service.parse_csv(content, "General")
        assert questions[0]["question"] == "Pick one, please"
        assert questions[0]["options"][1] == "b, c"


class TestTextParsing:

    def test_parses_numbered_questions(self):
        questions, skipped = import_service.parse_text(TEXT_CONTENT, "Trivia")

        assert [q["correct_answer"] for q in questions] == [2, 1]
        assert skipped == [2]
        assert questions[0]["options"] == ["London", "Berlin", "Paris", "Madrid"]
        assert all(q["category"] == "Trivia" for q in questions)


class TestImportEndpoints:

    def test_csv_preview(self, client, admin_headers):
        response = client.post(
            "/api/quizzes/import/csv/preview",
            headers=admin_headers,
            files={"file": ("questions.csv", CSV_CONTENT.encode(), "text/csv")},
            data={"category": "General"},
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["questions"]) == 4
        assert body["skipped_rows"] == [4]

    def test_csv_import_creates_quiz_with_default_time_limit(self, client, admin_headers):
        response = client.post(
            "/api/quizzes/import/csv",
            headers=admin_headers,
            files={"file": ("questions.csv", CSV_CONTENT.encode(), "text/csv")},
            data={"title": "Imported", "category": "General"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["time_limit"] == 30
        assert body["question_count"] == 4
        assert body["questions"][0]["correct_answer"] == 1

    def test_csv_import_without_valid_rows(self, client, admin_headers):
        response = client.post(
            "/api/quizzes/import/csv",
            headers=admin_headers,
            files={"file": ("questions.csv", b"Question,Option1\nonly,one\n", "text/csv")},
            data={"title": "Empty"},
        )
        assert response.status_code == 400

    def test_text_preview(self, client, admin_headers):
        response = client.post(
            "/api/quizzes/import/document/preview",
            headers=admin_headers,
            files={"file": ("questions.txt", TEXT_CONTENT.encode(), "text/plain")},
        )

        assert response.status_code == 200
        assert len(response.json()["questions"]) == 2

    def test_pdf_preview_needs_gemini(self, client, admin_headers):
        response = client.post(
            "/api/quizzes/import/document/preview",
            headers=admin_headers,
            files={"file": ("questions.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 503

    def test_import_requires_admin(self, client, user_headers):
        response = client.post(
            "/api/quizzes/import/csv/preview",
            headers=user_headers,
            files={"file": ("questions.csv", CSV_CONTENT.encode(), "text/csv")},
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"
