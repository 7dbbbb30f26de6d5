from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quiz_engine.core.errors import AlreadyAttemptedError, NotFoundError, PersistenceFailure, PersistenceTimeoutError
from quiz_engine.db.base import Base
from quiz_engine.engine.authoring import AuthoringStage
from quiz_engine.engine.commit import commit_quiz
from quiz_engine.engine.contracts import QuizHeader, StudentAnswerRecord
from quiz_engine.engine.grading import grade_session
from quiz_engine.engine.reconcile import reconcile_question
from quiz_engine.engine.session import TakingSession
from quiz_engine.models.answer import Answer
from quiz_engine.models.question import Question
from quiz_engine.models.student_answer import StudentAnswer
from quiz_engine.services.sql_store import SqlQuizStore
from quiz_engine.services.user_service import ensure_user_exists


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    ensure_user_exists(session, 1, role="teacher")
    ensure_user_exists(session, 2, role="student")
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_store(db):
    return SqlQuizStore(db)


def _committed_quiz(sql_store, teacher):
    stage = AuthoringStage(teacher, course_id=3, title="Basics")
    stage.stage_question("2+2?", ["3", "4"], 1)
    stage.stage_question("Capital of France?", ["Paris", "Lyon", "Nice"], 0)
    return commit_quiz(sql_store, stage)


def test_commit_round_trips_questions_and_answers(sql_store, teacher):
    report = _committed_quiz(sql_store, teacher)

    assert report.ok
    questions = sql_store.get_questions_by_quiz(report.quiz_id)
    assert [q.text for q in questions] == ["2+2?", "Capital of France?"]
    answers = sql_store.get_answers_by_question(questions[1].id)
    assert [(a.text, a.is_correct) for a in answers] == [("Paris", True), ("Lyon", False), ("Nice", False)]
    assert [q.title for q in sql_store.get_quizzes_by_teacher(1)] == ["Basics"]


def test_full_attempt_scores_fifty_and_blocks_a_second_start(sql_store, teacher, student):
    report = _committed_quiz(sql_store, teacher)
    q1, q2 = report.question_ids
    pick = {a.text: a.id for q in (q1, q2) for a in sql_store.get_answers_by_question(q)}

    session = TakingSession(student, report.quiz_id)
    session.start(sql_store)
    session.select_answer(pick["4"])
    session.advance()
    session.select_answer(pick["Lyon"])
    session.advance()
    session.submit()
    graded = grade_session(sql_store, session)

    assert graded.score == 50
    assert sql_store.get_result(2, report.quiz_id).score == 50
    assert [r.is_correct for r in sql_store.get_student_answers(graded.result_id)] == [True, False]
    with pytest.raises(AlreadyAttemptedError):
        TakingSession(student, report.quiz_id).start(sql_store)


def test_unique_constraint_maps_to_already_attempted(sql_store, teacher):
    quiz_id = _committed_quiz(sql_store, teacher).quiz_id
    sql_store.create_result(quiz_id, 2, 40)

    with pytest.raises(AlreadyAttemptedError):
        sql_store.create_result(quiz_id, 2, 90)
    # The session is usable again after the rollback.
    assert sql_store.has_attempted(2, quiz_id)


def test_reconcile_against_sql_rows(sql_store, teacher):
    report = _committed_quiz(sql_store, teacher)
    q1 = report.question_ids[0]
    old_ids = [a.id for a in sql_store.get_answers_by_question(q1)]

    reconcile_question(sql_store, teacher, q1, text="2+2?", options=["3", "5", "4"], correct_index=1)

    answers = sql_store.get_answers_by_question(q1)
    assert [a.text for a in answers] == ["3", "5", "4"]
    assert [a.text for a in answers if a.is_correct] == ["5"]
    assert [a.id for a in answers][:2] == old_ids


def test_missing_rows_raise_not_found(sql_store):
    with pytest.raises(NotFoundError):
        sql_store.update_question(999, "x")
    with pytest.raises(NotFoundError):
        sql_store.delete_answer(999)
    with pytest.raises(NotFoundError):
        sql_store.update_quiz(999, QuizHeader(course_id=1, teacher_id=1, title="x"))


def test_delete_quiz_removes_children_and_results(db, sql_store, teacher):
    report = _committed_quiz(sql_store, teacher)
    result_id = sql_store.create_result(report.quiz_id, 2, 0)
    sql_store.save_student_answers(
        [StudentAnswerRecord(quiz_result_id=result_id, question_id=report.question_ids[0], selected_answer_id=None, is_correct=False)]
    )

    sql_store.delete_quiz(report.quiz_id)

    assert sql_store.get_quiz_by_id(report.quiz_id) is None
    assert db.query(Question).count() == 0
    assert db.query(Answer).count() == 0
    assert db.query(StudentAnswer).count() == 0
    assert not sql_store.has_attempted(2, report.quiz_id)


def test_student_answers_outlive_question_deletion(sql_store, teacher):
    report = _committed_quiz(sql_store, teacher)
    q1 = report.question_ids[0]
    result_id = sql_store.create_result(report.quiz_id, 2, 100)
    sql_store.save_student_answers([StudentAnswerRecord(result_id, q1, None, True)])

    sql_store.delete_question(q1)

    rows = sql_store.get_student_answers(result_id)
    assert [(r.question_id, r.is_correct) for r in rows] == [(q1, True)]


def test_driver_errors_become_persistence_failures(monkeypatch, db, sql_store):
    def _boom():
        raise sa_exc.OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", _boom)

    with pytest.raises(PersistenceFailure) as exc:
        sql_store.create_question(1, "x")
    assert exc.value.code == "PERSISTENCE_FAILURE"


def test_pool_timeouts_are_a_distinct_kind(monkeypatch, db, sql_store):
    def _timeout():
        raise sa_exc.TimeoutError("QueuePool limit reached")

    monkeypatch.setattr(db, "commit", _timeout)

    with pytest.raises(PersistenceTimeoutError) as exc:
        sql_store.create_answer(1, "x", False)
    assert exc.value.code == "PERSISTENCE_TIMEOUT"
    assert exc.value.status_code == 504
