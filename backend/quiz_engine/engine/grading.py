from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from quiz_engine.core.errors import AlreadyAttemptedError
from quiz_engine.engine.contracts import AnswerRecord, StudentAnswerRecord
from quiz_engine.engine.session import Submission, TakingSession
from quiz_engine.engine.store import QuizStore

logger = logging.getLogger(__name__)


@dataclass
class GradedQuestion:
    question_id: int
    selected_answer_id: Optional[int]
    correct_answer_id: Optional[int]
    is_correct: bool


@dataclass
class GradeReport:
    quiz_id: int
    student_id: int
    result_id: int
    score: int
    correct_count: int
    total: int
    items: List[GradedQuestion] = field(default_factory=list)

    @property
    def incorrect_count(self) -> int:
        return self.total - self.correct_count


def compute_score(correct_count: int, total: int) -> int:
    """Integer percentage, rounded down. An empty quiz scores 0."""
    if total <= 0:
        return 0
    return (int(correct_count) * 100) // int(total)


def find_correct_answer(answers: Sequence[AnswerRecord]) -> Optional[AnswerRecord]:
    for a in answers:
        if a.is_correct:
            return a
    return None


def grade_selections(store: QuizStore, question_ids: Sequence[int], selections: Dict[int, Optional[int]]) -> List[GradedQuestion]:
    items: List[GradedQuestion] = []
    for qid in question_ids:
        correct = find_correct_answer(store.get_answers_by_question(int(qid)))
        chosen = selections.get(int(qid))
        # No correct-flagged answer means nobody can get this question right.
        is_correct = chosen is not None and correct is not None and int(chosen) == int(correct.id)
        items.append(
            GradedQuestion(
                question_id=int(qid),
                selected_answer_id=int(chosen) if chosen is not None else None,
                correct_answer_id=int(correct.id) if correct is not None else None,
                is_correct=bool(is_correct),
            )
        )
    return items


# Submissions are serialized per (student, quiz) so the attempted-check and
# the result insert cannot interleave inside this process.
# An entry is dropped once no submission holds or waits on it.
_locks_guard = threading.Lock()
_submission_locks: Dict[Tuple[int, int], List] = {}


@contextmanager
def _submission_lock(student_id: int, quiz_id: int) -> Iterator[None]:
    key = (int(student_id), int(quiz_id))
    with _locks_guard:
        entry = _submission_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                _submission_locks.pop(key, None)


def record_submission(store: QuizStore, submission: Submission) -> GradeReport:
    with _submission_lock(submission.student_id, submission.quiz_id):
        if store.has_attempted(submission.student_id, submission.quiz_id):
            raise AlreadyAttemptedError(
                "You have already taken this quiz.",
                details={"quiz_id": submission.quiz_id, "student_id": submission.student_id},
            )

        items = grade_selections(store, submission.question_ids, submission.selections)
        correct_count = sum(1 for i in items if i.is_correct)
        total = len(items)
        score = compute_score(correct_count, total)

        # Header first, then detail rows carrying the header id.
        result_id = int(store.create_result(submission.quiz_id, submission.student_id, score))
        store.save_student_answers(
            [
                StudentAnswerRecord(
                    quiz_result_id=result_id,
                    question_id=i.question_id,
                    selected_answer_id=i.selected_answer_id,
                    is_correct=i.is_correct,
                )
                for i in items
            ]
        )

    logger.info(
        "graded quiz %s for student %s: %s/%s correct, score=%s",
        submission.quiz_id,
        submission.student_id,
        correct_count,
        total,
        score,
    )
    return GradeReport(
        quiz_id=submission.quiz_id,
        student_id=submission.student_id,
        result_id=result_id,
        score=score,
        correct_count=correct_count,
        total=total,
        items=items,
    )


def grade_session(store: QuizStore, session: TakingSession) -> GradeReport:
    return record_submission(store, session.take_submission())
