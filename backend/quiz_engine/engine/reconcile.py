"""Minimal-diff persistence for edited questions.

Answers are matched to the edit form by position: slot ``i`` of the form
reuses the id of the ``i``-th stored answer (stored order), regardless of
text. Reordering answers therefore rewrites them in place instead of being a
no-op; callers relying on answer ids across edits must keep positions stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from quiz_engine.core.errors import NotFoundError, PersistenceFailure
from quiz_engine.engine.authoring import QuestionForm, parse_question_form
from quiz_engine.engine.contracts import AnswerRecord, QuestionRecord, UserContext
from quiz_engine.engine.quizzes import require_owned_quiz
from quiz_engine.engine.store import QuizStore

logger = logging.getLogger(__name__)


@dataclass
class PlannedAnswer:
    slot: int
    text: str
    is_correct: bool
    # None until the write pass creates it.
    answer_id: Optional[int] = None


@dataclass
class ReconcileReport:
    question_id: int
    created: List[int] = field(default_factory=list)
    updated: List[int] = field(default_factory=list)
    deleted: List[int] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    has_correct_answer: bool = True

    @property
    def ok(self) -> bool:
        return not self.failures


def plan_answer_changes(existing: Sequence[AnswerRecord], form: QuestionForm) -> Tuple[List[PlannedAnswer], List[AnswerRecord]]:
    """Return (updated answer list, answers to delete) for one question."""
    planned: List[PlannedAnswer] = []
    for slot, text in form.filled_slots():
        prior = existing[slot] if slot < len(existing) else None
        planned.append(
            PlannedAnswer(
                slot=slot,
                text=text,
                is_correct=(slot == form.correct_slot),
                answer_id=int(prior.id) if prior is not None else None,
            )
        )

    kept = {p.answer_id for p in planned if p.answer_id is not None}
    to_delete = [a for a in existing if int(a.id) not in kept]
    return planned, to_delete


def _question_or_404(store: QuizStore, question_id: int) -> QuestionRecord:
    question = store.get_question_by_id(int(question_id))
    if not question:
        raise NotFoundError("Question not found", details={"question_id": int(question_id)})
    return question


def reconcile_question(
    store: QuizStore,
    ctx: UserContext,
    question_id: int,
    *,
    text: Optional[str],
    options: Sequence[Optional[str]],
    correct_index: Optional[int],
) -> ReconcileReport:
    question = _question_or_404(store, question_id)
    require_owned_quiz(store, ctx, question.quiz_id)

    form = parse_question_form(text, options, correct_index, require_correct_filled=False)
    existing = store.get_answers_by_question(int(question.id))

    # 1. question text; a failure here aborts before any answer is touched
    store.update_question(int(question.id), form.text)

    planned, to_delete = plan_answer_changes(existing, form)
    report = ReconcileReport(question_id=int(question.id), has_correct_answer=any(p.is_correct for p in planned))

    # 2. deletion pass
    for answer in to_delete:
        try:
            store.delete_answer(int(answer.id))
            report.deleted.append(int(answer.id))
        except (PersistenceFailure, NotFoundError) as exc:
            logger.warning("reconcile question %s: delete answer %s failed: %s", question.id, answer.id, exc)
            report.failures.append({"op": "delete", "answer_id": int(answer.id), "error": exc.code})

    # 3. write pass
    for p in planned:
        try:
            if p.answer_id is not None:
                store.update_answer(p.answer_id, p.text, p.is_correct)
                report.updated.append(p.answer_id)
            else:
                p.answer_id = int(store.create_answer(int(question.id), p.text, p.is_correct))
                report.created.append(p.answer_id)
        except (PersistenceFailure, NotFoundError) as exc:
            logger.warning("reconcile question %s: write slot %s failed: %s", question.id, p.slot, exc)
            report.failures.append({"op": "update" if p.answer_id else "create", "slot": p.slot, "error": exc.code})

    if not report.has_correct_answer:
        # Kept as-is: grading treats the question as unwinnable.
        logger.warning("question %s saved without a correct answer (marked slot %s is empty)", question.id, form.correct_slot)

    logger.info(
        "reconciled question %s: created=%s updated=%s deleted=%s failures=%s",
        question.id,
        len(report.created),
        len(report.updated),
        len(report.deleted),
        len(report.failures),
    )
    return report


def delete_question(store: QuizStore, ctx: UserContext, question_id: int) -> int:
    """Delete a question and its answers. Returns the number of questions left in the quiz."""
    question = _question_or_404(store, question_id)
    require_owned_quiz(store, ctx, question.quiz_id)

    store.delete_question(int(question.id))
    remaining = len(store.get_questions_by_quiz(int(question.quiz_id)))
    if remaining == 0:
        logger.info("quiz %s has no questions left", question.quiz_id)
    return remaining


def add_question(
    store: QuizStore,
    ctx: UserContext,
    quiz_id: int,
    *,
    text: Optional[str],
    options: Sequence[Optional[str]],
    correct_index: Optional[int],
) -> ReconcileReport:
    """Append a new question with its answers to a quiz that is already durable."""
    quiz = require_owned_quiz(store, ctx, quiz_id)
    form = parse_question_form(text, options, correct_index)

    question_id = int(store.create_question(int(quiz.id), form.text))
    report = ReconcileReport(question_id=question_id)
    for slot, answer_text in form.filled_slots():
        try:
            report.created.append(int(store.create_answer(question_id, answer_text, slot == form.correct_slot)))
        except PersistenceFailure as exc:
            logger.warning("add question %s: answer slot %s failed: %s", question_id, slot, exc)
            report.failures.append({"op": "create", "slot": slot, "error": exc.code})
    return report
