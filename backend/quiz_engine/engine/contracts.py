from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional


Role = Literal["teacher", "student"]


@dataclass(frozen=True)
class UserContext:
    """Identity of the caller, passed explicitly into every engine call."""

    user_id: int
    role: Role

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"

    @property
    def is_student(self) -> bool:
        return self.role == "student"


@dataclass
class QuizHeader:
    """Quiz fields that exist before the quiz has a durable id."""

    course_id: int
    teacher_id: int
    title: str
    description: str = ""
    comment: str = ""


@dataclass
class QuizRecord:
    id: int
    course_id: int
    teacher_id: int
    title: str
    description: str = ""
    comment: str = ""
    created_at: Optional[datetime] = None


@dataclass
class QuestionRecord:
    id: int
    quiz_id: int
    text: str


@dataclass
class AnswerRecord:
    id: int
    question_id: int
    text: str
    is_correct: bool = False


@dataclass
class QuizResultRecord:
    id: int
    quiz_id: int
    student_id: int
    score: int
    submitted_at: Optional[datetime] = None


@dataclass
class StudentAnswerRecord:
    quiz_result_id: int
    question_id: int
    # None means the question was left unanswered.
    selected_answer_id: Optional[int]
    is_correct: bool
