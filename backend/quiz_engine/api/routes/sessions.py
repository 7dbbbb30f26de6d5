from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from quiz_engine.api.deps import get_db, require_student
from quiz_engine.engine.contracts import UserContext
from quiz_engine.schemas.common import ok
from quiz_engine.schemas.quiz import AnswerSelectRequest, SessionSubmitRequest
from quiz_engine.services import taking_service


router = APIRouter(tags=["sessions"])


@router.post("/quizzes/{quiz_id}/sessions")
def start_session(request: Request, quiz_id: int, ctx: UserContext = Depends(require_student), db: Session = Depends(get_db)):
    return ok(request, taking_service.start_session(db, ctx, quiz_id))


@router.get("/sessions/{session_id}")
def get_session(request: Request, session_id: str, ctx: UserContext = Depends(require_student)):
    return ok(request, taking_service.get_session(ctx, session_id))


@router.put("/sessions/{session_id}/selection")
def select_answer(
    request: Request,
    session_id: str,
    payload: AnswerSelectRequest,
    ctx: UserContext = Depends(require_student),
):
    return ok(request, taking_service.select_answer(ctx, session_id, payload.answer_id))


@router.post("/sessions/{session_id}/advance")
def advance(request: Request, session_id: str, ctx: UserContext = Depends(require_student)):
    return ok(request, taking_service.advance(ctx, session_id))


@router.post("/sessions/{session_id}/back")
def back(request: Request, session_id: str, ctx: UserContext = Depends(require_student)):
    return ok(request, taking_service.back(ctx, session_id))


@router.post("/sessions/{session_id}/submit")
def submit(
    request: Request,
    session_id: str,
    payload: Optional[SessionSubmitRequest] = None,
    ctx: UserContext = Depends(require_student),
    db: Session = Depends(get_db),
):
    return ok(request, taking_service.submit(db, ctx, session_id, confirm_unanswered=bool(payload and payload.confirm_unanswered)))


@router.delete("/sessions/{session_id}")
def abandon(request: Request, session_id: str, ctx: UserContext = Depends(require_student)):
    return ok(request, taking_service.abandon(ctx, session_id))
