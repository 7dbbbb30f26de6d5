from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from quiz_engine.api.deps import get_db, require_teacher
from quiz_engine.engine.contracts import UserContext
from quiz_engine.schemas.common import ok
from quiz_engine.schemas.quiz import QuestionIn, QuizHeaderIn
from quiz_engine.services import quiz_service


router = APIRouter(tags=["quiz-drafts"])


@router.post("/quiz-drafts")
def open_draft(request: Request, payload: QuizHeaderIn, ctx: UserContext = Depends(require_teacher)):
    return ok(request, quiz_service.open_draft(ctx, payload))


@router.get("/quiz-drafts/{draft_id}")
def get_draft(request: Request, draft_id: str, ctx: UserContext = Depends(require_teacher)):
    return ok(request, quiz_service.get_draft(ctx, draft_id))


@router.post("/quiz-drafts/{draft_id}/questions")
def stage_question(
    request: Request,
    draft_id: str,
    payload: QuestionIn,
    ctx: UserContext = Depends(require_teacher),
):
    return ok(request, quiz_service.stage_draft_question(ctx, draft_id, payload))


@router.delete("/quiz-drafts/{draft_id}/questions/{index}")
def unstage_question(request: Request, draft_id: str, index: int, ctx: UserContext = Depends(require_teacher)):
    return ok(request, quiz_service.unstage_draft_question(ctx, draft_id, index))


@router.delete("/quiz-drafts/{draft_id}")
def discard_draft(request: Request, draft_id: str, ctx: UserContext = Depends(require_teacher)):
    return ok(request, quiz_service.discard_draft(ctx, draft_id))


@router.post("/quiz-drafts/{draft_id}/commit")
def commit_draft(
    request: Request,
    draft_id: str,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.commit_draft(db, ctx, draft_id))
