"""In-memory authoring stage for quizzes that are not durable yet.

Questions and answers are held by reference in the stage; nothing gets an id
until ``commit.commit_quiz`` writes the quiz header and flushes the stage
against the id the store hands back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from quiz_engine.core.config import settings
from quiz_engine.core.errors import ForbiddenError, NotFoundError, ValidationError
from quiz_engine.engine.contracts import QuizHeader, UserContext

logger = logging.getLogger(__name__)


@dataclass
class QuestionForm:
    """A validated question form: trimmed text, answer slots and the marked slot."""

    text: str
    slots: List[str]
    correct_slot: int

    def filled_slots(self) -> List[Tuple[int, str]]:
        return [(i, s) for i, s in enumerate(self.slots) if s]


def parse_question_form(
    text: Optional[str],
    options: Sequence[Optional[str]],
    correct_index: Optional[int],
    *,
    require_correct_filled: bool = True,
) -> QuestionForm:
    """Validate a question form the way the teacher-facing editor does.

    The first ``QUIZ_MIN_OPTIONS`` slots are mandatory, later slots are
    optional. With ``require_correct_filled=False`` the marked slot may be
    empty (the edit form never guarded against it). Empty optional slots
    between filled ones are kept so their position stays meaningful.
    """
    q_text = (text or "").strip()
    if not q_text:
        raise ValidationError("Please enter a question.")

    slots = [(o or "").strip() for o in (options or [])]
    max_options = int(settings.QUIZ_MAX_OPTIONS)
    min_options = int(settings.QUIZ_MIN_OPTIONS)
    if len(slots) > max_options:
        raise ValidationError(
            f"A question accepts at most {max_options} answer options.",
            details={"options": len(slots)},
        )
    if len(slots) < min_options or not all(slots[:min_options]):
        raise ValidationError(f"Please provide at least {min_options} answer options.")

    if correct_index is None:
        raise ValidationError("Please select the correct answer.")
    ci = int(correct_index)
    if ci < 0 or ci >= max_options:
        raise ValidationError("Correct answer selection is out of range.", details={"correct_index": ci})
    if require_correct_filled and (ci >= len(slots) or not slots[ci]):
        raise ValidationError("The answer marked as correct is empty.", details={"correct_index": ci})

    # Trailing empty slots carry no information.
    while len(slots) > min_options and not slots[-1]:
        slots.pop()

    return QuestionForm(text=q_text, slots=slots, correct_slot=ci)


@dataclass
class StagedAnswer:
    text: str
    is_correct: bool = False


@dataclass
class StagedQuestion:
    text: str
    answers: List[StagedAnswer] = field(default_factory=list)

    @property
    def correct_answer(self) -> Optional[StagedAnswer]:
        for a in self.answers:
            if a.is_correct:
                return a
        return None


class AuthoringStage:
    """Builder for a new quiz and its questions before the quiz exists in storage."""

    def __init__(
        self,
        ctx: UserContext,
        *,
        course_id: Optional[int],
        title: Optional[str] = None,
        description: Optional[str] = None,
        comment: Optional[str] = None,
    ):
        if not ctx.is_teacher:
            raise ForbiddenError("Only teachers can author quizzes.")
        if course_id is None or int(course_id) <= 0:
            raise ValidationError("Please select a valid course.")

        cid = int(course_id)
        self.ctx = ctx
        self.header = QuizHeader(
            course_id=cid,
            teacher_id=int(ctx.user_id),
            title=(title or "").strip() or f"{settings.DRAFT_TITLE_PREFIX} {cid}",
            description=(description or "").strip(),
            comment=(comment or "").strip(),
        )
        self._questions: List[StagedQuestion] = []

    @property
    def questions(self) -> Tuple[StagedQuestion, ...]:
        return tuple(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    @property
    def is_empty(self) -> bool:
        return not self._questions

    def stage_question(self, text: Optional[str], options: Sequence[Optional[str]], correct_index: Optional[int]) -> StagedQuestion:
        form = parse_question_form(text, options, correct_index)
        staged = StagedQuestion(
            text=form.text,
            answers=[StagedAnswer(text=s, is_correct=(i == form.correct_slot)) for i, s in form.filled_slots()],
        )
        self._questions.append(staged)
        logger.debug("staged question #%s for course %s", len(self._questions), self.header.course_id)
        return staged

    def unstage_question(self, index: int) -> StagedQuestion:
        if index < 0 or index >= len(self._questions):
            raise NotFoundError("Staged question not found.", details={"index": index})
        return self._questions.pop(index)

    def discard_stage(self) -> None:
        if self._questions:
            logger.info("discarding %s staged question(s) for course %s", len(self._questions), self.header.course_id)
        self._questions.clear()
