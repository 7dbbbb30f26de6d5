"""SQLAlchemy implementation of the engine's ``QuizStore`` contract.

Each write commits on its own, so multi-step protocols (commit, reconcile)
keep whatever rows already succeeded when a later row fails.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from quiz_engine.core.errors import AlreadyAttemptedError, NotFoundError, PersistenceFailure, PersistenceTimeoutError
from quiz_engine.engine.contracts import (
    AnswerRecord,
    QuestionRecord,
    QuizHeader,
    QuizRecord,
    QuizResultRecord,
    StudentAnswerRecord,
)
from quiz_engine.models.answer import Answer
from quiz_engine.models.question import Question
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.quiz_result import QuizResult
from quiz_engine.models.student_answer import StudentAnswer

logger = logging.getLogger(__name__)


def _quiz_record(row: Quiz) -> QuizRecord:
    return QuizRecord(
        id=int(row.id),
        course_id=int(row.course_id),
        teacher_id=int(row.teacher_id),
        title=row.title,
        description=row.description or "",
        comment=row.comment or "",
        created_at=row.created_at,
    )


def _question_record(row: Question) -> QuestionRecord:
    return QuestionRecord(id=int(row.id), quiz_id=int(row.quiz_id), text=row.text)


def _answer_record(row: Answer) -> AnswerRecord:
    return AnswerRecord(id=int(row.id), question_id=int(row.question_id), text=row.text, is_correct=bool(row.is_correct))


def _result_record(row: QuizResult) -> QuizResultRecord:
    return QuizResultRecord(
        id=int(row.id),
        quiz_id=int(row.quiz_id),
        student_id=int(row.student_id),
        score=int(row.score),
        submitted_at=row.submitted_at,
    )


class SqlQuizStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except sa_exc.TimeoutError as e:
            self.db.rollback()
            logger.error("%s timed out waiting for a connection: %s", op, e)
            raise PersistenceTimeoutError(f"{op} timed out", details={"op": op}) from e
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            logger.error("%s failed: %s", op, e)
            raise PersistenceFailure(f"{op} failed", details={"op": op}) from e

    # ----- quiz -----

    def create_quiz(self, header: QuizHeader) -> int:
        with self._guard("create_quiz"):
            row = Quiz(
                course_id=int(header.course_id),
                teacher_id=int(header.teacher_id),
                title=header.title,
                description=header.description or "",
                comment=header.comment or "",
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return int(row.id)

    def update_quiz(self, quiz_id: int, header: QuizHeader) -> None:
        with self._guard("update_quiz"):
            row = self.db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
            if not row:
                raise NotFoundError("Quiz not found", details={"quiz_id": int(quiz_id)})
            row.title = header.title
            row.description = header.description or ""
            row.comment = header.comment or ""
            row.course_id = int(header.course_id)
            self.db.commit()

    def delete_quiz(self, quiz_id: int) -> None:
        with self._guard("delete_quiz"):
            row = self.db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
            if not row:
                raise NotFoundError("Quiz not found", details={"quiz_id": int(quiz_id)})

            # Explicit cascade: SQLite does not enforce ON DELETE without a pragma.
            result_ids = [rid for (rid,) in self.db.query(QuizResult.id).filter(QuizResult.quiz_id == row.id).all()]
            if result_ids:
                self.db.query(StudentAnswer).filter(StudentAnswer.quiz_result_id.in_(result_ids)).delete(synchronize_session=False)
                self.db.query(QuizResult).filter(QuizResult.id.in_(result_ids)).delete(synchronize_session=False)
            question_ids = [qid for (qid,) in self.db.query(Question.id).filter(Question.quiz_id == row.id).all()]
            if question_ids:
                self.db.query(Answer).filter(Answer.question_id.in_(question_ids)).delete(synchronize_session=False)
                self.db.query(Question).filter(Question.id.in_(question_ids)).delete(synchronize_session=False)
            self.db.delete(row)
            self.db.commit()

    def get_quizzes_by_teacher(self, teacher_id: int) -> List[QuizRecord]:
        with self._guard("get_quizzes_by_teacher"):
            rows = (
                self.db.query(Quiz)
                .filter(Quiz.teacher_id == int(teacher_id))
                .order_by(Quiz.created_at.desc(), Quiz.id.desc())
                .all()
            )
            return [_quiz_record(r) for r in rows]

    def get_quiz_by_id(self, quiz_id: int) -> Optional[QuizRecord]:
        with self._guard("get_quiz_by_id"):
            row = self.db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
            return _quiz_record(row) if row else None

    # ----- question -----

    def create_question(self, quiz_id: int, text: str) -> int:
        with self._guard("create_question"):
            row = Question(quiz_id=int(quiz_id), text=text)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return int(row.id)

    def update_question(self, question_id: int, text: str) -> None:
        with self._guard("update_question"):
            row = self.db.query(Question).filter(Question.id == int(question_id)).first()
            if not row:
                raise NotFoundError("Question not found", details={"question_id": int(question_id)})
            row.text = text
            self.db.commit()

    def delete_question(self, question_id: int) -> None:
        with self._guard("delete_question"):
            row = self.db.query(Question).filter(Question.id == int(question_id)).first()
            if not row:
                raise NotFoundError("Question not found", details={"question_id": int(question_id)})
            self.db.query(Answer).filter(Answer.question_id == row.id).delete(synchronize_session=False)
            self.db.delete(row)
            self.db.commit()

    def get_question_by_id(self, question_id: int) -> Optional[QuestionRecord]:
        with self._guard("get_question_by_id"):
            row = self.db.query(Question).filter(Question.id == int(question_id)).first()
            return _question_record(row) if row else None

    def get_questions_by_quiz(self, quiz_id: int) -> List[QuestionRecord]:
        with self._guard("get_questions_by_quiz"):
            rows = self.db.query(Question).filter(Question.quiz_id == int(quiz_id)).order_by(Question.id.asc()).all()
            return [_question_record(r) for r in rows]

    # ----- answer -----

    def create_answer(self, question_id: int, text: str, is_correct: bool) -> int:
        with self._guard("create_answer"):
            row = Answer(question_id=int(question_id), text=text, is_correct=bool(is_correct))
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return int(row.id)

    def update_answer(self, answer_id: int, text: str, is_correct: bool) -> None:
        with self._guard("update_answer"):
            row = self.db.query(Answer).filter(Answer.id == int(answer_id)).first()
            if not row:
                raise NotFoundError("Answer not found", details={"answer_id": int(answer_id)})
            row.text = text
            row.is_correct = bool(is_correct)
            self.db.commit()

    def delete_answer(self, answer_id: int) -> None:
        with self._guard("delete_answer"):
            row = self.db.query(Answer).filter(Answer.id == int(answer_id)).first()
            if not row:
                raise NotFoundError("Answer not found", details={"answer_id": int(answer_id)})
            self.db.delete(row)
            self.db.commit()

    def get_answers_by_question(self, question_id: int) -> List[AnswerRecord]:
        with self._guard("get_answers_by_question"):
            rows = self.db.query(Answer).filter(Answer.question_id == int(question_id)).order_by(Answer.id.asc()).all()
            return [_answer_record(r) for r in rows]

    # ----- result -----

    def has_attempted(self, student_id: int, quiz_id: int) -> bool:
        with self._guard("has_attempted"):
            row = (
                self.db.query(QuizResult.id)
                .filter(QuizResult.student_id == int(student_id), QuizResult.quiz_id == int(quiz_id))
                .first()
            )
            return row is not None

    def create_result(self, quiz_id: int, student_id: int, score: int) -> int:
        row = QuizResult(quiz_id=int(quiz_id), student_id=int(student_id), score=int(score))
        try:
            with self._guard("create_result"):
                self.db.add(row)
                self.db.commit()
                self.db.refresh(row)
        except PersistenceFailure as e:
            # uq_quiz_results_quiz_student: a concurrent submission won the race.
            if isinstance(e.__cause__, sa_exc.IntegrityError):
                raise AlreadyAttemptedError(
                    "You have already taken this quiz.",
                    details={"quiz_id": int(quiz_id), "student_id": int(student_id)},
                ) from e
            raise
        return int(row.id)

    def get_result(self, student_id: int, quiz_id: int) -> Optional[QuizResultRecord]:
        with self._guard("get_result"):
            row = (
                self.db.query(QuizResult)
                .filter(QuizResult.student_id == int(student_id), QuizResult.quiz_id == int(quiz_id))
                .first()
            )
            return _result_record(row) if row else None

    def get_results_by_quiz(self, quiz_id: int) -> List[QuizResultRecord]:
        with self._guard("get_results_by_quiz"):
            rows = (
                self.db.query(QuizResult)
                .filter(QuizResult.quiz_id == int(quiz_id))
                .order_by(QuizResult.submitted_at.desc(), QuizResult.id.desc())
                .all()
            )
            return [_result_record(r) for r in rows]

    # ----- student answers -----

    def save_student_answers(self, rows: Sequence[StudentAnswerRecord]) -> None:
        # One transaction for the whole batch: all rows or none.
        with self._guard("save_student_answers"):
            self.db.add_all(
                [
                    StudentAnswer(
                        quiz_result_id=int(r.quiz_result_id),
                        question_id=int(r.question_id),
                        selected_answer_id=int(r.selected_answer_id) if r.selected_answer_id is not None else None,
                        is_correct=bool(r.is_correct),
                    )
                    for r in rows
                ]
            )
            self.db.commit()

    def get_student_answers(self, result_id: int) -> List[StudentAnswerRecord]:
        with self._guard("get_student_answers"):
            rows = (
                self.db.query(StudentAnswer)
                .filter(StudentAnswer.quiz_result_id == int(result_id))
                .order_by(StudentAnswer.id.asc())
                .all()
            )
            return [
                StudentAnswerRecord(
                    quiz_result_id=int(r.quiz_result_id),
                    question_id=int(r.question_id),
                    selected_answer_id=int(r.selected_answer_id) if r.selected_answer_id is not None else None,
                    is_correct=bool(r.is_correct),
                )
                for r in rows
            ]
