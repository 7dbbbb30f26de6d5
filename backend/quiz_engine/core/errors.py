"""Error kinds raised by the quiz engine.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can turn it into the standard ``{request_id, data, error}`` envelope
without knowing about individual error classes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class QuizEngineError(Exception):
    code: str = "QUIZ_ENGINE_ERROR"
    status_code: int = 400

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(QuizEngineError):
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(QuizEngineError):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(QuizEngineError):
    code = "FORBIDDEN"
    status_code = 403


class PersistenceFailure(QuizEngineError):
    code = "PERSISTENCE_FAILURE"
    status_code = 503


class PersistenceTimeoutError(PersistenceFailure):
    code = "PERSISTENCE_TIMEOUT"
    status_code = 504


class AlreadyAttemptedError(QuizEngineError):
    code = "ALREADY_ATTEMPTED"
    status_code = 409


class IncompleteAnswerError(QuizEngineError):
    code = "ANSWER_REQUIRED"
    status_code = 409


class UnansweredConfirmationRequired(QuizEngineError):
    code = "CONFIRM_UNANSWERED"
    status_code = 409


class SessionStateError(QuizEngineError):
    code = "INVALID_SESSION_STATE"
    status_code = 409
