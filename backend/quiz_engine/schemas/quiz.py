from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


# Shape-only models: content rules (empty text, option count, correct slot)
# are enforced by the engine so API and library callers get the same errors.


class QuizHeaderIn(BaseModel):
    course_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[str] = None


class QuestionIn(BaseModel):
    text: Optional[str] = None
    # Answer slots in form order; empty strings are allowed for optional slots.
    options: List[Optional[str]] = Field(default_factory=list)
    correct_index: Optional[int] = None


class QuizCreateRequest(QuizHeaderIn):
    questions: List[QuestionIn] = Field(default_factory=list)


class QuizUpdateRequest(QuizHeaderIn):
    pass


class AnswerSelectRequest(BaseModel):
    answer_id: int


class SessionSubmitRequest(BaseModel):
    confirm_unanswered: bool = False
