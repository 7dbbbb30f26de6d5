from __future__ import annotations

import itertools
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from quiz_engine.core.errors import AlreadyAttemptedError, NotFoundError, PersistenceFailure
from quiz_engine.engine import grading
from quiz_engine.engine.contracts import (
    AnswerRecord,
    QuestionRecord,
    QuizHeader,
    QuizRecord,
    QuizResultRecord,
    StudentAnswerRecord,
    UserContext,
)
from quiz_engine.services import quiz_service, taking_service


FailRule = Union[bool, Callable[..., bool]]


class FakeQuizStore:
    """In-memory QuizStore. ``fail[op]`` makes that operation raise PersistenceFailure.

    A rule is either True (always fail) or a predicate called with the
    operation's positional arguments.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.quizzes: Dict[int, QuizRecord] = {}
        self.questions: Dict[int, QuestionRecord] = {}
        self.answers: Dict[int, AnswerRecord] = {}
        self.results: Dict[int, QuizResultRecord] = {}
        self.student_answers: List[StudentAnswerRecord] = []
        self.fail: Dict[str, FailRule] = {}
        self.calls: List[str] = []

    def _op(self, op: str, *args) -> None:
        self.calls.append(op)
        rule = self.fail.get(op)
        if rule is True or (callable(rule) and rule(*args)):
            raise PersistenceFailure(f"{op} failed", details={"op": op})

    # ----- quiz -----

    def create_quiz(self, header: QuizHeader) -> int:
        self._op("create_quiz", header)
        qid = next(self._ids)
        self.quizzes[qid] = QuizRecord(
            id=qid,
            course_id=header.course_id,
            teacher_id=header.teacher_id,
            title=header.title,
            description=header.description,
            comment=header.comment,
        )
        return qid

    def update_quiz(self, quiz_id: int, header: QuizHeader) -> None:
        self._op("update_quiz", quiz_id, header)
        if quiz_id not in self.quizzes:
            raise NotFoundError("Quiz not found")
        q = self.quizzes[quiz_id]
        q.course_id, q.title, q.description, q.comment = header.course_id, header.title, header.description, header.comment

    def delete_quiz(self, quiz_id: int) -> None:
        self._op("delete_quiz", quiz_id)
        if self.quizzes.pop(quiz_id, None) is None:
            raise NotFoundError("Quiz not found")
        for q in [q for q in self.questions.values() if q.quiz_id == quiz_id]:
            self.delete_question(q.id)
        for r in [r for r in self.results.values() if r.quiz_id == quiz_id]:
            del self.results[r.id]
            self.student_answers = [s for s in self.student_answers if s.quiz_result_id != r.id]

    def get_quizzes_by_teacher(self, teacher_id: int) -> List[QuizRecord]:
        return [q for q in reversed(list(self.quizzes.values())) if q.teacher_id == teacher_id]

    def get_quiz_by_id(self, quiz_id: int) -> Optional[QuizRecord]:
        return self.quizzes.get(quiz_id)

    # ----- question -----

    def create_question(self, quiz_id: int, text: str) -> int:
        self._op("create_question", quiz_id, text)
        qid = next(self._ids)
        self.questions[qid] = QuestionRecord(id=qid, quiz_id=quiz_id, text=text)
        return qid

    def update_question(self, question_id: int, text: str) -> None:
        self._op("update_question", question_id, text)
        if question_id not in self.questions:
            raise NotFoundError("Question not found")
        self.questions[question_id].text = text

    def delete_question(self, question_id: int) -> None:
        self._op("delete_question", question_id)
        if self.questions.pop(question_id, None) is None:
            raise NotFoundError("Question not found")
        for a in [a for a in self.answers.values() if a.question_id == question_id]:
            del self.answers[a.id]

    def get_question_by_id(self, question_id: int) -> Optional[QuestionRecord]:
        return self.questions.get(question_id)

    def get_questions_by_quiz(self, quiz_id: int) -> List[QuestionRecord]:
        return [q for q in self.questions.values() if q.quiz_id == quiz_id]

    # ----- answer -----

    def create_answer(self, question_id: int, text: str, is_correct: bool) -> int:
        self._op("create_answer", question_id, text, is_correct)
        aid = next(self._ids)
        self.answers[aid] = AnswerRecord(id=aid, question_id=question_id, text=text, is_correct=bool(is_correct))
        return aid

    def update_answer(self, answer_id: int, text: str, is_correct: bool) -> None:
        self._op("update_answer", answer_id, text, is_correct)
        if answer_id not in self.answers:
            raise NotFoundError("Answer not found")
        self.answers[answer_id].text = text
        self.answers[answer_id].is_correct = bool(is_correct)

    def delete_answer(self, answer_id: int) -> None:
        self._op("delete_answer", answer_id)
        if self.answers.pop(answer_id, None) is None:
            raise NotFoundError("Answer not found")

    def get_answers_by_question(self, question_id: int) -> List[AnswerRecord]:
        return sorted((a for a in self.answers.values() if a.question_id == question_id), key=lambda a: a.id)

    # ----- result -----

    def has_attempted(self, student_id: int, quiz_id: int) -> bool:
        return self.get_result(student_id, quiz_id) is not None

    def create_result(self, quiz_id: int, student_id: int, score: int) -> int:
        self._op("create_result", quiz_id, student_id, score)
        if self.get_result(student_id, quiz_id) is not None:
            raise AlreadyAttemptedError("You have already taken this quiz.")
        rid = next(self._ids)
        self.results[rid] = QuizResultRecord(id=rid, quiz_id=quiz_id, student_id=student_id, score=score)
        return rid

    def get_result(self, student_id: int, quiz_id: int) -> Optional[QuizResultRecord]:
        for r in self.results.values():
            if r.student_id == student_id and r.quiz_id == quiz_id:
                return r
        return None

    def get_results_by_quiz(self, quiz_id: int) -> List[QuizResultRecord]:
        return [r for r in self.results.values() if r.quiz_id == quiz_id]

    # ----- student answers -----

    def save_student_answers(self, rows: Sequence[StudentAnswerRecord]) -> None:
        self._op("save_student_answers", rows)
        self.student_answers.extend(rows)

    def get_student_answers(self, result_id: int) -> List[StudentAnswerRecord]:
        return [s for s in self.student_answers if s.quiz_result_id == result_id]

    # ----- helpers for tests -----

    def seed(self, teacher_id: int, questions: Sequence[Tuple[str, Sequence[str], Optional[int]]], *, course_id: int = 7, title: str = "Seeded") -> Tuple[int, List[int]]:
        """Create a quiz directly. ``correct`` may be None for a zero-correct question."""
        quiz_id = self.create_quiz(QuizHeader(course_id=course_id, teacher_id=teacher_id, title=title))
        question_ids = []
        for text, options, correct in questions:
            qid = self.create_question(quiz_id, text)
            for i, opt in enumerate(options):
                self.create_answer(qid, opt, i == correct)
            question_ids.append(qid)
        self.calls.clear()
        return quiz_id, question_ids

    def answer_id(self, question_id: int, text: str) -> int:
        return next(a.id for a in self.get_answers_by_question(question_id) if a.text == text)


@pytest.fixture
def store():
    return FakeQuizStore()


@pytest.fixture
def teacher():
    return UserContext(user_id=1, role="teacher")


@pytest.fixture
def other_teacher():
    return UserContext(user_id=5, role="teacher")


@pytest.fixture
def student():
    return UserContext(user_id=2, role="student")


@pytest.fixture
def sample_quiz(store, teacher):
    """Q1 "2+2?" [3, 4] correct 4; Q2 "Capital of France?" [Paris, Lyon, Nice] correct Paris."""
    return store.seed(
        teacher.user_id,
        [
            ("2+2?", ["3", "4"], 1),
            ("Capital of France?", ["Paris", "Lyon", "Nice"], 0),
        ],
    )


@pytest.fixture(autouse=True)
def _reset_process_state():
    yield
    quiz_service._drafts.clear()
    taking_service._sessions.clear()
    grading._submission_locks.clear()
