from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from quiz_engine.api.deps import get_db, require_student, require_teacher, require_user
from quiz_engine.engine.contracts import UserContext
from quiz_engine.schemas.common import ok
from quiz_engine.schemas.quiz import QuestionIn, QuizCreateRequest, QuizUpdateRequest
from quiz_engine.services import quiz_service


router = APIRouter(tags=["quizzes"])


@router.post("/quizzes")
def create_quiz(
    request: Request,
    payload: QuizCreateRequest,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.create_quiz(db, ctx, payload))


# Declared before /quizzes/{quiz_id} so "mine" is not parsed as an id.
@router.get("/quizzes/mine")
def my_quizzes(request: Request, ctx: UserContext = Depends(require_teacher), db: Session = Depends(get_db)):
    return ok(request, quiz_service.list_my_quizzes(db, ctx))


@router.get("/quizzes/{quiz_id}")
def get_quiz(request: Request, quiz_id: int, ctx: UserContext = Depends(require_user), db: Session = Depends(get_db)):
    return ok(request, quiz_service.get_quiz(db, ctx, quiz_id))


@router.put("/quizzes/{quiz_id}")
def update_quiz(
    request: Request,
    quiz_id: int,
    payload: QuizUpdateRequest,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.update_quiz(db, ctx, quiz_id, payload))


@router.delete("/quizzes/{quiz_id}")
def delete_quiz(request: Request, quiz_id: int, ctx: UserContext = Depends(require_teacher), db: Session = Depends(get_db)):
    return ok(request, quiz_service.remove_quiz(db, ctx, quiz_id))


@router.post("/quizzes/{quiz_id}/questions")
def add_question(
    request: Request,
    quiz_id: int,
    payload: QuestionIn,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.add_quiz_question(db, ctx, quiz_id, payload))


@router.put("/questions/{question_id}")
def edit_question(
    request: Request,
    question_id: int,
    payload: QuestionIn,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.edit_question(db, ctx, question_id, payload))


@router.delete("/questions/{question_id}")
def delete_question(
    request: Request,
    question_id: int,
    ctx: UserContext = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    return ok(request, quiz_service.remove_question(db, ctx, question_id))


@router.get("/quizzes/{quiz_id}/results")
def quiz_results(request: Request, quiz_id: int, ctx: UserContext = Depends(require_teacher), db: Session = Depends(get_db)):
    return ok(request, quiz_service.quiz_results(db, ctx, quiz_id))


@router.get("/quizzes/{quiz_id}/results/me")
def my_result(request: Request, quiz_id: int, ctx: UserContext = Depends(require_student), db: Session = Depends(get_db)):
    return ok(request, quiz_service.my_result(db, ctx, quiz_id))
