"""Taking-session state machine for one attempt at one quiz.

    LOADING -> PRESENTING(i) -> PRESENTING(i+1) ... -> SUBMITTING -> COMPLETED
    LOADING -> ALREADY_COMPLETED   (student already has a result)
    LOADING -> NO_QUESTIONS        (quiz has no questions)
    any non-terminal state -> ABANDONED

Nothing is persisted by the session itself. Once COMPLETED, the selections
are handed to the grading engine exactly once via ``take_submission``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from quiz_engine.core.errors import (
    AlreadyAttemptedError,
    ForbiddenError,
    IncompleteAnswerError,
    SessionStateError,
    UnansweredConfirmationRequired,
    ValidationError,
)
from quiz_engine.engine.contracts import AnswerRecord, QuestionRecord, UserContext
from quiz_engine.engine.quizzes import get_quiz_or_404
from quiz_engine.engine.store import QuizStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    loading = "loading"
    presenting = "presenting"
    submitting = "submitting"
    completed = "completed"
    already_completed = "already_completed"
    no_questions = "no_questions"
    abandoned = "abandoned"


TERMINAL_STATES = {
    SessionState.completed,
    SessionState.already_completed,
    SessionState.no_questions,
    SessionState.abandoned,
}


@dataclass
class PresentedQuestion:
    question: QuestionRecord
    options: List[AnswerRecord] = field(default_factory=list)


@dataclass(frozen=True)
class Submission:
    quiz_id: int
    student_id: int
    question_ids: tuple
    # question_id -> selected answer id, or None when left unanswered
    selections: Dict[int, Optional[int]]


class TakingSession:
    def __init__(self, ctx: UserContext, quiz_id: int):
        if not ctx.is_student:
            raise ForbiddenError("Only students can take quizzes.")
        self.ctx = ctx
        self.quiz_id = int(quiz_id)
        self.quiz_title: str = ""
        self.state = SessionState.loading
        self.index = 0
        self._questions: List[PresentedQuestion] = []
        self._selections: Dict[int, int] = {}
        self._handed_off = False

    # ----- queries -----

    @property
    def questions(self) -> List[PresentedQuestion]:
        return list(self._questions)

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def is_last(self) -> bool:
        return self.index >= self.total - 1

    @property
    def current(self) -> Optional[PresentedQuestion]:
        if self.state not in (SessionState.presenting, SessionState.submitting) or not self._questions:
            return None
        return self._questions[self.index]

    def selection_for(self, question_id: int) -> Optional[int]:
        return self._selections.get(int(question_id))

    @property
    def unanswered_question_ids(self) -> List[int]:
        # Questions without options cannot be answered and are not counted.
        return [
            int(p.question.id)
            for p in self._questions
            if p.options and int(p.question.id) not in self._selections
        ]

    # ----- transitions -----

    def start(self, store: QuizStore) -> SessionState:
        self._require_state(SessionState.loading)

        if store.has_attempted(int(self.ctx.user_id), self.quiz_id):
            self.state = SessionState.already_completed
            raise AlreadyAttemptedError(
                "You have already taken this quiz.",
                details={"quiz_id": self.quiz_id, "student_id": int(self.ctx.user_id)},
            )

        quiz = get_quiz_or_404(store, self.quiz_id)
        self.quiz_title = quiz.title
        for q in store.get_questions_by_quiz(self.quiz_id):
            self._questions.append(PresentedQuestion(question=q, options=store.get_answers_by_question(int(q.id))))

        empty = [int(p.question.id) for p in self._questions if not p.options]
        if empty:
            logger.warning("quiz %s has question(s) without answers %s; they will be graded incorrect", self.quiz_id, empty)

        if not self._questions:
            self.state = SessionState.no_questions
            logger.info("quiz %s has no questions; session for student %s disabled", self.quiz_id, self.ctx.user_id)
        else:
            self.state = SessionState.presenting
            self.index = 0
        return self.state

    def select_answer(self, answer_id: int) -> None:
        self._require_state(SessionState.presenting, SessionState.submitting)
        current = self._questions[self.index]
        valid_ids = {int(a.id) for a in current.options}
        if int(answer_id) not in valid_ids:
            raise ValidationError(
                "Selected answer does not belong to the current question.",
                details={"question_id": int(current.question.id), "answer_id": int(answer_id)},
            )
        self._selections[int(current.question.id)] = int(answer_id)
        if self.state == SessionState.submitting:
            # Changing an answer from the review step returns to that question.
            self.state = SessionState.presenting

    def advance(self) -> SessionState:
        self._require_state(SessionState.presenting)
        current = self._questions[self.index]
        if current.options and int(current.question.id) not in self._selections:
            raise IncompleteAnswerError(
                "Please select an answer before proceeding.",
                details={"question_id": int(current.question.id), "index": self.index},
            )
        if self.is_last:
            self.state = SessionState.submitting
        else:
            self.index += 1
        return self.state

    def back(self) -> SessionState:
        self._require_state(SessionState.presenting, SessionState.submitting)
        if self.state == SessionState.submitting:
            self.state = SessionState.presenting
        elif self.index > 0:
            self.index -= 1
        return self.state

    def submit(self, *, confirm_unanswered: bool = False) -> Submission:
        self._require_state(SessionState.submitting)
        unanswered = self.unanswered_question_ids
        if unanswered and not confirm_unanswered:
            n = len(unanswered)
            raise UnansweredConfirmationRequired(
                f"You have {n} unanswered question{'s' if n > 1 else ''}. Do you want to submit anyway?",
                details={"unanswered": n, "question_ids": unanswered},
            )
        self.state = SessionState.completed
        logger.info("student %s completed quiz %s (%s unanswered)", self.ctx.user_id, self.quiz_id, len(unanswered))
        return self._build_submission()

    def take_submission(self) -> Submission:
        """Hand the completed selections to grading. Allowed once per session."""
        self._require_state(SessionState.completed)
        if self._handed_off:
            raise SessionStateError("This attempt has already been submitted for grading.")
        self._handed_off = True
        return self._build_submission()

    def abandon(self) -> None:
        if self.state in TERMINAL_STATES:
            raise SessionStateError(f"Session is already {self.state.value}.")
        self.state = SessionState.abandoned
        self._selections.clear()

    # ----- helpers -----

    def _build_submission(self) -> Submission:
        ids = tuple(int(p.question.id) for p in self._questions)
        return Submission(
            quiz_id=self.quiz_id,
            student_id=int(self.ctx.user_id),
            question_ids=ids,
            selections={qid: self._selections.get(qid) for qid in ids},
        )

    def _require_state(self, *allowed: SessionState) -> None:
        if self.state not in allowed:
            raise SessionStateError(
                f"Action not allowed while session is {self.state.value}.",
                details={"state": self.state.value, "allowed": [s.value for s in allowed]},
            )
