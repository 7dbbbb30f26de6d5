from quiz_engine.models.user import User
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.question import Question
from quiz_engine.models.answer import Answer
from quiz_engine.models.quiz_result import QuizResult
from quiz_engine.models.student_answer import StudentAnswer

__all__ = [
    "User",
    "Quiz",
    "Question",
    "Answer",
    "QuizResult",
    "StudentAnswer",
]
