from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quiz_engine.db.base import Base
from quiz_engine.db.session import get_db
from quiz_engine.main import app


TEACHER = {"X-User-Id": "1", "X-User-Role": "teacher"}
STUDENT = {"X-User-Id": "2", "X-User-Role": "student"}


@pytest.fixture
def client():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def _get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)
        engine.dispose()


def _data(resp, status=200):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["error"] is None
    return body["data"]


def _error(resp, status):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["data"] is None
    return body["error"]


def _create_sample_quiz(client):
    draft = _data(client.post("/api/quiz-drafts", json={"course_id": 7, "title": "Basics"}, headers=TEACHER))
    did = draft["draft_id"]
    _data(client.post(f"/api/quiz-drafts/{did}/questions", json={"text": "2+2?", "options": ["3", "4"], "correct_index": 1}, headers=TEACHER))
    _data(
        client.post(
            f"/api/quiz-drafts/{did}/questions",
            json={"text": "Capital of France?", "options": ["Paris", "Lyon", "Nice"], "correct_index": 0},
            headers=TEACHER,
        )
    )
    return _data(client.post(f"/api/quiz-drafts/{did}/commit", headers=TEACHER))


def _pick(view, text):
    return next(o["id"] for o in view["question"]["options"] if o["text"] == text)


def test_health_reports_ok_and_echoes_request_id(client):
    resp = client.get("/api/health", headers={"X-Request-ID": "rid-health"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"] == "rid-health"


def test_missing_identity_is_unauthenticated(client):
    err = _error(client.get("/api/quizzes/mine"), 401)
    assert err["code"] == "HTTP_ERROR"


def test_students_cannot_author(client):
    _error(client.post("/api/quiz-drafts", json={"course_id": 7}, headers=STUDENT), 403)


def test_draft_lifecycle_and_commit(client):
    committed = _create_sample_quiz(client)

    assert committed["complete"] is True
    assert committed["question_count"] == 2
    assert committed["answer_count"] == 5

    mine = _data(client.get("/api/quizzes/mine", headers=TEACHER))
    assert [q["title"] for q in mine["quizzes"]] == ["Basics"]

    detail = _data(client.get(f"/api/quizzes/{committed['quiz_id']}", headers=TEACHER))
    assert [q["text"] for q in detail["questions"]] == ["2+2?", "Capital of France?"]


def test_invalid_question_returns_validation_envelope(client):
    draft = _data(client.post("/api/quiz-drafts", json={"course_id": 7}, headers=TEACHER))
    assert draft["header"]["title"] == "Quiz for course 7"

    err = _error(
        client.post(f"/api/quiz-drafts/{draft['draft_id']}/questions", json={"text": "Q", "options": ["only one"], "correct_index": 0}, headers=TEACHER),
        422,
    )
    assert err["code"] == "VALIDATION_ERROR"

    unstaged = _error(client.delete(f"/api/quiz-drafts/{draft['draft_id']}/questions/0", headers=TEACHER), 404)
    assert unstaged["code"] == "NOT_FOUND"


def test_committing_an_empty_draft_is_rejected(client):
    draft = _data(client.post("/api/quiz-drafts", json={"course_id": 7}, headers=TEACHER))
    err = _error(client.post(f"/api/quiz-drafts/{draft['draft_id']}/commit", headers=TEACHER), 422)
    assert err["code"] == "VALIDATION_ERROR"


def test_one_shot_create_reports_the_bad_question(client):
    payload = {
        "course_id": 7,
        "questions": [
            {"text": "ok", "options": ["a", "b"], "correct_index": 0},
            {"text": "", "options": ["a", "b"], "correct_index": 0},
        ],
    }
    err = _error(client.post("/api/quizzes", json=payload, headers=TEACHER), 422)
    assert err["details"]["question_index"] == 1


def test_student_takes_quiz_and_scores_fifty(client):
    quiz_id = _create_sample_quiz(client)["quiz_id"]

    view = _data(client.post(f"/api/quizzes/{quiz_id}/sessions", headers=STUDENT))
    sid = view["session_id"]
    assert view["state"] == "presenting"
    assert all("is_correct" not in o for o in view["question"]["options"])

    err = _error(client.post(f"/api/sessions/{sid}/advance", headers=STUDENT), 409)
    assert err["code"] == "ANSWER_REQUIRED"

    _data(client.put(f"/api/sessions/{sid}/selection", json={"answer_id": _pick(view, "4")}, headers=STUDENT))
    view = _data(client.post(f"/api/sessions/{sid}/advance", headers=STUDENT))
    assert view["index"] == 1 and view["is_last"] is True
    _data(client.put(f"/api/sessions/{sid}/selection", json={"answer_id": _pick(view, "Lyon")}, headers=STUDENT))
    view = _data(client.post(f"/api/sessions/{sid}/advance", headers=STUDENT))
    assert view["state"] == "submitting"

    out = _data(client.post(f"/api/sessions/{sid}/submit", json={}, headers=STUDENT))
    assert out["result"]["score"] == 50
    assert out["session"]["state"] == "completed"

    again = _error(client.post(f"/api/quizzes/{quiz_id}/sessions", headers=STUDENT), 409)
    assert again["code"] == "ALREADY_ATTEMPTED"
    _error(client.get(f"/api/sessions/{sid}", headers=STUDENT), 404)

    review = _data(client.get(f"/api/quizzes/{quiz_id}/results/me", headers=STUDENT))
    assert review["result"]["score"] == 50
    assert review["incorrect_count"] == 1

    summary = _data(client.get(f"/api/quizzes/{quiz_id}/results", headers=TEACHER))
    assert summary["attempts"] == 1
    assert summary["average_score"] == 50.0


def test_sessions_are_bound_to_their_student(client):
    quiz_id = _create_sample_quiz(client)["quiz_id"]
    sid = _data(client.post(f"/api/quizzes/{quiz_id}/sessions", headers=STUDENT))["session_id"]

    other = {"X-User-Id": "3", "X-User-Role": "student"}
    err = _error(client.get(f"/api/sessions/{sid}", headers=other), 403)
    assert err["code"] == "FORBIDDEN"

    abandoned = _data(client.delete(f"/api/sessions/{sid}", headers=STUDENT))
    assert abandoned["state"] == "abandoned"


def test_teacher_edits_question_in_place(client):
    committed = _create_sample_quiz(client)
    q1 = committed["question_ids"][0]

    report = _data(
        client.put(f"/api/questions/{q1}", json={"text": "2+2?", "options": ["3", "5", "4"], "correct_index": 1}, headers=TEACHER)
    )
    assert len(report["updated"]) == 2 and len(report["created"]) == 1

    detail = _data(client.get(f"/api/quizzes/{committed['quiz_id']}", headers=TEACHER))
    answers = detail["questions"][0]["answers"]
    assert [(a["text"], a["is_correct"]) for a in answers] == [("3", False), ("5", True), ("4", False)]

    other = {"X-User-Id": "9", "X-User-Role": "teacher"}
    _error(client.put(f"/api/questions/{q1}", json={"text": "x", "options": ["a", "b"], "correct_index": 0}, headers=other), 403)


def test_update_and_delete_quiz(client):
    quiz_id = _create_sample_quiz(client)["quiz_id"]

    updated = _data(client.put(f"/api/quizzes/{quiz_id}", json={"title": "Renamed"}, headers=TEACHER))
    assert updated["quiz"]["title"] == "Renamed"
    assert updated["quiz"]["course_id"] == 7

    _data(client.delete(f"/api/quizzes/{quiz_id}", headers=TEACHER))
    _error(client.get(f"/api/quizzes/{quiz_id}", headers=TEACHER), 404)
