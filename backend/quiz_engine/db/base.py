from quiz_engine.db.base_class import Base

# Import every model so Base.metadata sees all tables (Alembic autogenerate, create_all)
from quiz_engine.models.user import User
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.question import Question
from quiz_engine.models.answer import Answer
from quiz_engine.models.quiz_result import QuizResult
from quiz_engine.models.student_answer import StudentAnswer
