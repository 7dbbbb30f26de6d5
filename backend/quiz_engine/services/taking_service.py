"""Student-facing taking flow on top of ``TakingSession``.

Sessions live in a process-local registry keyed by an opaque id. The
views returned here never include ``is_correct`` for an answer option;
correctness is only revealed after grading.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from quiz_engine.core.config import settings
from quiz_engine.engine.contracts import UserContext
from quiz_engine.engine.grading import GradeReport, grade_session
from quiz_engine.engine.session import SessionState, TakingSession
from quiz_engine.services.registry import OwnedRegistry
from quiz_engine.services.sql_store import SqlQuizStore

logger = logging.getLogger(__name__)

_sessions: OwnedRegistry[TakingSession] = OwnedRegistry("session", ttl_seconds=settings.SESSION_TTL_SEC)


def _question_view(session: TakingSession) -> Optional[Dict[str, Any]]:
    current = session.current
    if current is None:
        return None
    qid = int(current.question.id)
    return {
        "id": qid,
        "text": current.question.text,
        "options": [{"id": int(a.id), "text": a.text} for a in current.options],
        "selected_answer_id": session.selection_for(qid),
    }


def _session_view(session_id: Optional[str], session: TakingSession) -> Dict[str, Any]:
    unanswered = len(session.unanswered_question_ids)
    return {
        "session_id": session_id,
        "quiz_id": session.quiz_id,
        "quiz_title": session.quiz_title,
        "state": session.state.value,
        "index": session.index,
        "total": session.total,
        "is_last": session.is_last if session.total else False,
        "question": _question_view(session),
        "answered": sum(1 for p in session.questions if session.selection_for(p.question.id) is not None),
        "unanswered": unanswered,
    }


def _grade_out(report: GradeReport) -> Dict[str, Any]:
    out = asdict(report)
    out["incorrect_count"] = report.incorrect_count
    return out


def start_session(db: Session, ctx: UserContext, quiz_id: int) -> Dict[str, Any]:
    session = TakingSession(ctx, quiz_id)
    session.start(SqlQuizStore(db))
    if session.state == SessionState.no_questions:
        # Nothing to take; the caller shows the empty-quiz notice.
        return _session_view(None, session)
    # Navigating away leaves the old session open; a restart replaces it.
    _sessions.discard_where(ctx.user_id, lambda s: s.quiz_id == session.quiz_id)
    session_id = _sessions.add(ctx.user_id, session)
    logger.info("student %s started quiz %s (session %s)", ctx.user_id, session.quiz_id, session_id)
    return _session_view(session_id, session)


def get_session(ctx: UserContext, session_id: str) -> Dict[str, Any]:
    return _session_view(session_id, _sessions.get(session_id, ctx.user_id))


def select_answer(ctx: UserContext, session_id: str, answer_id: int) -> Dict[str, Any]:
    session = _sessions.get(session_id, ctx.user_id)
    session.select_answer(answer_id)
    return _session_view(session_id, session)


def advance(ctx: UserContext, session_id: str) -> Dict[str, Any]:
    session = _sessions.get(session_id, ctx.user_id)
    session.advance()
    return _session_view(session_id, session)


def back(ctx: UserContext, session_id: str) -> Dict[str, Any]:
    session = _sessions.get(session_id, ctx.user_id)
    session.back()
    return _session_view(session_id, session)


def submit(db: Session, ctx: UserContext, session_id: str, *, confirm_unanswered: bool = False) -> Dict[str, Any]:
    session = _sessions.get(session_id, ctx.user_id)
    session.submit(confirm_unanswered=confirm_unanswered)
    try:
        report = grade_session(SqlQuizStore(db), session)
    finally:
        # A completed session cannot be graded twice, so it is dropped either way.
        _sessions.discard(session_id)
    return {"session": _session_view(session_id, session), "result": _grade_out(report)}


def abandon(ctx: UserContext, session_id: str) -> Dict[str, Any]:
    session = _sessions.pop(session_id, ctx.user_id)
    session.abandon()
    logger.info("student %s abandoned quiz %s", ctx.user_id, session.quiz_id)
    return {"session_id": session_id, "state": session.state.value}
