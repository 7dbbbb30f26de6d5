from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from quiz_engine.core.errors import ForbiddenError, NotFoundError, ValidationError
from quiz_engine.engine.contracts import AnswerRecord, QuestionRecord, QuizHeader, QuizRecord, UserContext
from quiz_engine.engine.store import QuizStore

logger = logging.getLogger(__name__)


@dataclass
class QuestionDetail:
    question: QuestionRecord
    answers: List[AnswerRecord] = field(default_factory=list)


@dataclass
class QuizDetail:
    quiz: QuizRecord
    questions: List[QuestionDetail] = field(default_factory=list)


def get_quiz_or_404(store: QuizStore, quiz_id: int) -> QuizRecord:
    quiz = store.get_quiz_by_id(int(quiz_id))
    if not quiz:
        raise NotFoundError("Quiz not found", details={"quiz_id": int(quiz_id)})
    return quiz


def require_owned_quiz(store: QuizStore, ctx: UserContext, quiz_id: int) -> QuizRecord:
    quiz = get_quiz_or_404(store, quiz_id)
    if not ctx.is_teacher or int(quiz.teacher_id) != int(ctx.user_id):
        raise ForbiddenError("Only the teacher who owns this quiz can change it.", details={"quiz_id": int(quiz.id)})
    return quiz


def list_teacher_quizzes(store: QuizStore, ctx: UserContext) -> List[QuizRecord]:
    if not ctx.is_teacher:
        raise ForbiddenError("Teacher role required")
    return store.get_quizzes_by_teacher(int(ctx.user_id))


def load_quiz_detail(store: QuizStore, quiz_id: int) -> QuizDetail:
    """Quiz with its questions and answers in stored order."""
    quiz = get_quiz_or_404(store, quiz_id)
    detail = QuizDetail(quiz=quiz)
    for q in store.get_questions_by_quiz(int(quiz.id)):
        detail.questions.append(QuestionDetail(question=q, answers=store.get_answers_by_question(int(q.id))))
    return detail


def load_quiz_for_editing(store: QuizStore, ctx: UserContext, quiz_id: int) -> QuizDetail:
    require_owned_quiz(store, ctx, quiz_id)
    return load_quiz_detail(store, quiz_id)


def update_quiz_header(
    store: QuizStore,
    ctx: UserContext,
    quiz_id: int,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    comment: Optional[str] = None,
    course_id: Optional[int] = None,
) -> QuizRecord:
    """Overwrite the header fields that were provided; omitted fields keep their value."""
    quiz = require_owned_quiz(store, ctx, quiz_id)

    new_title = quiz.title if title is None else title.strip()
    if not new_title:
        raise ValidationError("Quiz title cannot be empty.")
    new_course = quiz.course_id if course_id is None else int(course_id)
    if new_course <= 0:
        raise ValidationError("Please select a valid course.")

    header = QuizHeader(
        course_id=new_course,
        teacher_id=int(quiz.teacher_id),
        title=new_title,
        description=quiz.description if description is None else description.strip(),
        comment=quiz.comment if comment is None else comment.strip(),
    )
    store.update_quiz(int(quiz.id), header)
    logger.info("quiz %s header updated by teacher %s", quiz.id, ctx.user_id)
    return get_quiz_or_404(store, quiz.id)


def delete_quiz(store: QuizStore, ctx: UserContext, quiz_id: int) -> None:
    quiz = require_owned_quiz(store, ctx, quiz_id)
    store.delete_quiz(int(quiz.id))
    logger.info("quiz %s deleted by teacher %s", quiz.id, ctx.user_id)
