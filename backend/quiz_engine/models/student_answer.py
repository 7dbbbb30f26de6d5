from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from quiz_engine.db.base_class import Base


class StudentAnswer(Base):
    __tablename__ = "student_answers"

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_result_id: Mapped[int] = mapped_column(ForeignKey("quiz_results.id", ondelete="CASCADE"), index=True, nullable=False)
    # Plain ids (no FK): the record must outlive later edits to the quiz.
    question_id: Mapped[int] = mapped_column(Integer, nullable=False)
    selected_answer_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
