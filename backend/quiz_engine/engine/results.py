from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from quiz_engine.core.errors import NotFoundError
from quiz_engine.engine.contracts import QuizResultRecord, UserContext
from quiz_engine.engine.grading import find_correct_answer
from quiz_engine.engine.quizzes import get_quiz_or_404, require_owned_quiz
from quiz_engine.engine.store import QuizStore


@dataclass
class ReviewItem:
    question_id: int
    question_text: Optional[str]
    selected_answer_id: Optional[int]
    selected_answer_text: Optional[str]
    correct_answer_id: Optional[int]
    correct_answer_text: Optional[str]
    is_correct: bool


@dataclass
class ResultReview:
    result: QuizResultRecord
    quiz_title: str
    correct_count: int
    total: int
    items: List[ReviewItem] = field(default_factory=list)

    @property
    def incorrect_count(self) -> int:
        return self.total - self.correct_count


@dataclass
class QuizResultsSummary:
    quiz_id: int
    attempts: int
    average_score: Optional[float]
    highest_score: Optional[int]
    lowest_score: Optional[int]
    results: List[QuizResultRecord] = field(default_factory=list)


def load_result_review(store: QuizStore, student_id: int, quiz_id: int) -> ResultReview:
    """Rebuild a stored attempt for display.

    Correctness comes from the stored StudentAnswer rows; question and answer
    texts are looked up in their current state and are None when the
    question has since been deleted.
    """
    quiz = get_quiz_or_404(store, quiz_id)
    result = store.get_result(int(student_id), int(quiz.id))
    if not result:
        raise NotFoundError("Could not retrieve quiz result.", details={"quiz_id": int(quiz.id), "student_id": int(student_id)})

    questions = {int(q.id): q for q in store.get_questions_by_quiz(int(quiz.id))}
    items: List[ReviewItem] = []
    for row in store.get_student_answers(int(result.id)):
        q = questions.get(int(row.question_id))
        answers = store.get_answers_by_question(int(row.question_id)) if q else []
        by_id = {int(a.id): a for a in answers}
        correct = find_correct_answer(answers)
        selected = by_id.get(int(row.selected_answer_id)) if row.selected_answer_id is not None else None
        items.append(
            ReviewItem(
                question_id=int(row.question_id),
                question_text=q.text if q else None,
                selected_answer_id=row.selected_answer_id,
                selected_answer_text=selected.text if selected else None,
                correct_answer_id=int(correct.id) if correct else None,
                correct_answer_text=correct.text if correct else None,
                is_correct=bool(row.is_correct),
            )
        )

    return ResultReview(
        result=result,
        quiz_title=quiz.title,
        correct_count=sum(1 for i in items if i.is_correct),
        total=len(items),
        items=items,
    )


def summarize_quiz_results(store: QuizStore, ctx: UserContext, quiz_id: int) -> QuizResultsSummary:
    quiz = require_owned_quiz(store, ctx, quiz_id)
    results = store.get_results_by_quiz(int(quiz.id))
    scores = [int(r.score) for r in results]
    return QuizResultsSummary(
        quiz_id=int(quiz.id),
        attempts=len(results),
        average_score=round(sum(scores) / len(scores), 1) if scores else None,
        highest_score=max(scores) if scores else None,
        lowest_score=min(scores) if scores else None,
        results=results,
    )
