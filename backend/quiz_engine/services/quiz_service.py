"""Teacher-facing quiz operations: drafts, commit, editing, results.

Functions take the request's SQLAlchemy session and the caller's
``UserContext`` and return plain dicts ready for the response envelope.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict

from sqlalchemy.orm import Session

from quiz_engine.core.config import settings
from quiz_engine.core.errors import QuizEngineError, ValidationError
from quiz_engine.engine.authoring import AuthoringStage, StagedQuestion
from quiz_engine.engine.commit import CommitReport, commit_quiz
from quiz_engine.engine.contracts import QuizRecord, UserContext
from quiz_engine.engine import quizzes as quiz_ops
from quiz_engine.engine import reconcile
from quiz_engine.engine.results import load_result_review, summarize_quiz_results
from quiz_engine.schemas.quiz import QuestionIn, QuizCreateRequest, QuizHeaderIn, QuizUpdateRequest
from quiz_engine.services.registry import OwnedRegistry
from quiz_engine.services.sql_store import SqlQuizStore

logger = logging.getLogger(__name__)

_drafts: OwnedRegistry[AuthoringStage] = OwnedRegistry("draft", ttl_seconds=settings.DRAFT_TTL_SEC)


def _staged_out(q: StagedQuestion) -> Dict[str, Any]:
    return {
        "text": q.text,
        "options": [a.text for a in q.answers],
        "correct_index": next((i for i, a in enumerate(q.answers) if a.is_correct), None),
    }


def _draft_out(draft_id: str, stage: AuthoringStage) -> Dict[str, Any]:
    return {
        "draft_id": draft_id,
        "header": asdict(stage.header),
        "question_count": len(stage),
        "questions": [_staged_out(q) for q in stage.questions],
    }


def _commit_out(report: CommitReport) -> Dict[str, Any]:
    return {
        "quiz_id": report.quiz_id,
        "question_ids": list(report.question_ids),
        "question_count": len(report.question_ids),
        "answer_count": report.answer_count,
        "complete": report.ok,
        "failures": list(report.failures),
    }


def _quiz_out(quiz: QuizRecord) -> Dict[str, Any]:
    return asdict(quiz)


# ----- drafts (authoring stage) -----


def open_draft(ctx: UserContext, payload: QuizHeaderIn) -> Dict[str, Any]:
    stage = AuthoringStage(
        ctx,
        course_id=payload.course_id,
        title=payload.title,
        description=payload.description,
        comment=payload.comment,
    )
    draft_id = _drafts.add(ctx.user_id, stage)
    return _draft_out(draft_id, stage)


def get_draft(ctx: UserContext, draft_id: str) -> Dict[str, Any]:
    return _draft_out(draft_id, _drafts.get(draft_id, ctx.user_id))


def stage_draft_question(ctx: UserContext, draft_id: str, payload: QuestionIn) -> Dict[str, Any]:
    stage = _drafts.get(draft_id, ctx.user_id)
    stage.stage_question(payload.text, payload.options, payload.correct_index)
    return _draft_out(draft_id, stage)


def unstage_draft_question(ctx: UserContext, draft_id: str, index: int) -> Dict[str, Any]:
    stage = _drafts.get(draft_id, ctx.user_id)
    stage.unstage_question(int(index))
    return _draft_out(draft_id, stage)


def discard_draft(ctx: UserContext, draft_id: str) -> Dict[str, Any]:
    stage = _drafts.pop(draft_id, ctx.user_id)
    stage.discard_stage()
    return {"draft_id": draft_id, "discarded": True}


def commit_draft(db: Session, ctx: UserContext, draft_id: str) -> Dict[str, Any]:
    # Taken out of the registry before writing so a concurrent commit of the
    # same draft gets NOT_FOUND instead of creating a second quiz.
    stage = _drafts.pop(draft_id, ctx.user_id)
    try:
        report = commit_quiz(SqlQuizStore(db), stage)
    except QuizEngineError:
        # Nothing durable was written (empty stage or failed header).
        _drafts.put(draft_id, ctx.user_id, stage)
        raise
    if not report.ok:
        logger.warning("draft %s committed as quiz %s with %s failed row(s)", draft_id, report.quiz_id, len(report.failures))
    return _commit_out(report)


def create_quiz(db: Session, ctx: UserContext, payload: QuizCreateRequest) -> Dict[str, Any]:
    """Stage every question of the payload, then commit in one call."""
    stage = AuthoringStage(
        ctx,
        course_id=payload.course_id,
        title=payload.title,
        description=payload.description,
        comment=payload.comment,
    )
    for i, q in enumerate(payload.questions):
        try:
            stage.stage_question(q.text, q.options, q.correct_index)
        except ValidationError as e:
            e.details["question_index"] = i
            raise
    return _commit_out(commit_quiz(SqlQuizStore(db), stage))


# ----- durable quizzes -----


def list_my_quizzes(db: Session, ctx: UserContext) -> Dict[str, Any]:
    items = quiz_ops.list_teacher_quizzes(SqlQuizStore(db), ctx)
    return {"teacher_id": int(ctx.user_id), "quizzes": [_quiz_out(q) for q in items]}


def get_quiz(db: Session, ctx: UserContext, quiz_id: int) -> Dict[str, Any]:
    """Owners get the full editing view; everyone else gets the header only."""
    store = SqlQuizStore(db)
    quiz = quiz_ops.get_quiz_or_404(store, quiz_id)
    if not (ctx.is_teacher and int(quiz.teacher_id) == int(ctx.user_id)):
        return {"quiz": _quiz_out(quiz), "question_count": len(store.get_questions_by_quiz(quiz.id))}

    detail = quiz_ops.load_quiz_for_editing(store, ctx, quiz_id)
    return {
        "quiz": _quiz_out(detail.quiz),
        "question_count": len(detail.questions),
        "questions": [
            {
                "id": d.question.id,
                "text": d.question.text,
                "answers": [asdict(a) for a in d.answers],
            }
            for d in detail.questions
        ],
    }


def update_quiz(db: Session, ctx: UserContext, quiz_id: int, payload: QuizUpdateRequest) -> Dict[str, Any]:
    quiz = quiz_ops.update_quiz_header(
        SqlQuizStore(db),
        ctx,
        quiz_id,
        title=payload.title,
        description=payload.description,
        comment=payload.comment,
        course_id=payload.course_id,
    )
    return {"quiz": _quiz_out(quiz)}


def remove_quiz(db: Session, ctx: UserContext, quiz_id: int) -> Dict[str, Any]:
    quiz_ops.delete_quiz(SqlQuizStore(db), ctx, quiz_id)
    return {"quiz_id": int(quiz_id), "deleted": True}


def add_quiz_question(db: Session, ctx: UserContext, quiz_id: int, payload: QuestionIn) -> Dict[str, Any]:
    report = reconcile.add_question(
        SqlQuizStore(db),
        ctx,
        quiz_id,
        text=payload.text,
        options=payload.options,
        correct_index=payload.correct_index,
    )
    return asdict(report)


def edit_question(db: Session, ctx: UserContext, question_id: int, payload: QuestionIn) -> Dict[str, Any]:
    report = reconcile.reconcile_question(
        SqlQuizStore(db),
        ctx,
        question_id,
        text=payload.text,
        options=payload.options,
        correct_index=payload.correct_index,
    )
    return asdict(report)


def remove_question(db: Session, ctx: UserContext, question_id: int) -> Dict[str, Any]:
    remaining = reconcile.delete_question(SqlQuizStore(db), ctx, question_id)
    return {"question_id": int(question_id), "deleted": True, "remaining_questions": remaining}


# ----- results -----


def quiz_results(db: Session, ctx: UserContext, quiz_id: int) -> Dict[str, Any]:
    return asdict(summarize_quiz_results(SqlQuizStore(db), ctx, quiz_id))


def my_result(db: Session, ctx: UserContext, quiz_id: int) -> Dict[str, Any]:
    review = load_result_review(SqlQuizStore(db), ctx.user_id, quiz_id)
    out = asdict(review)
    out["incorrect_count"] = review.incorrect_count
    return out
