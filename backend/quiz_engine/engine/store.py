"""Persistence contract consumed by the engine.

Implementations raise ``NotFoundError`` when an update/delete targets a
missing row and ``PersistenceFailure`` (or ``PersistenceTimeoutError``) when
the backend call itself fails. ``create_result`` raises
``AlreadyAttemptedError`` when the (student, quiz) pair already has a result.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from quiz_engine.engine.contracts import (
    AnswerRecord,
    QuestionRecord,
    QuizHeader,
    QuizRecord,
    QuizResultRecord,
    StudentAnswerRecord,
)


class QuizStore(Protocol):
    # Quiz
    def create_quiz(self, header: QuizHeader) -> int: ...

    def update_quiz(self, quiz_id: int, header: QuizHeader) -> None: ...

    def delete_quiz(self, quiz_id: int) -> None: ...

    def get_quizzes_by_teacher(self, teacher_id: int) -> List[QuizRecord]: ...

    def get_quiz_by_id(self, quiz_id: int) -> Optional[QuizRecord]: ...

    # Question
    def create_question(self, quiz_id: int, text: str) -> int: ...

    def update_question(self, question_id: int, text: str) -> None: ...

    def delete_question(self, question_id: int) -> None: ...

    def get_question_by_id(self, question_id: int) -> Optional[QuestionRecord]: ...

    def get_questions_by_quiz(self, quiz_id: int) -> List[QuestionRecord]: ...

    # Answer
    def create_answer(self, question_id: int, text: str, is_correct: bool) -> int: ...

    def update_answer(self, answer_id: int, text: str, is_correct: bool) -> None: ...

    def delete_answer(self, answer_id: int) -> None: ...

    def get_answers_by_question(self, question_id: int) -> List[AnswerRecord]: ...

    # Result
    def has_attempted(self, student_id: int, quiz_id: int) -> bool: ...

    def create_result(self, quiz_id: int, student_id: int, score: int) -> int: ...

    def get_result(self, student_id: int, quiz_id: int) -> Optional[QuizResultRecord]: ...

    def get_results_by_quiz(self, quiz_id: int) -> List[QuizResultRecord]: ...

    # StudentAnswer
    def save_student_answers(self, rows: Sequence[StudentAnswerRecord]) -> None: ...

    def get_student_answers(self, result_id: int) -> List[StudentAnswerRecord]: ...
