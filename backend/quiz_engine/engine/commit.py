from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from quiz_engine.core.errors import PersistenceFailure, ValidationError
from quiz_engine.engine.authoring import AuthoringStage
from quiz_engine.engine.store import QuizStore

logger = logging.getLogger(__name__)


@dataclass
class CommitReport:
    quiz_id: int
    question_ids: List[int] = field(default_factory=list)
    answer_count: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def commit_quiz(store: QuizStore, stage: AuthoringStage) -> CommitReport:
    """Make a staged quiz durable: header first, then questions, then answers.

    A failing header write aborts the commit and leaves the stage intact.
    Question/answer writes that fail are logged and reported but the flush
    keeps going; the header is never rolled back. The stage is cleared only
    when every row was written.
    """
    if stage.is_empty:
        raise ValidationError("Nothing to save: add at least one question before finishing.")

    # Step 1: header. Any failure propagates and nothing else is written.
    quiz_id = int(store.create_quiz(stage.header))
    report = CommitReport(quiz_id=quiz_id)
    logger.info("quiz %s created for course %s, flushing %s question(s)", quiz_id, stage.header.course_id, len(stage))

    for position, staged in enumerate(stage.questions):
        # Step 2: question row against the durable quiz id.
        try:
            question_id = int(store.create_question(quiz_id, staged.text))
        except PersistenceFailure as exc:
            logger.warning("commit quiz %s: question #%s failed: %s", quiz_id, position + 1, exc)
            report.failures.append(
                {"kind": "question", "position": position, "text": staged.text, "error": exc.code}
            )
            continue
        report.question_ids.append(question_id)

        # Step 3: its answers against the durable question id.
        for answer in staged.answers:
            try:
                store.create_answer(question_id, answer.text, bool(answer.is_correct))
                report.answer_count += 1
            except PersistenceFailure as exc:
                logger.warning("commit quiz %s: answer %r of question %s failed: %s", quiz_id, answer.text, question_id, exc)
                report.failures.append(
                    {"kind": "answer", "position": position, "question_id": question_id, "text": answer.text, "error": exc.code}
                )

    if report.ok:
        stage.discard_stage()
    else:
        logger.error("quiz %s committed with %s failed row(s)", quiz_id, len(report.failures))
    return report
