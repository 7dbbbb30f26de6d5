"""Common FastAPI dependencies.

There is no login: clients send identity headers, X-User-Id and X-User-Role.
The headers become an explicit ``UserContext`` that is passed into every
engine call. A minimal User row is auto-created so foreign keys won't fail.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from quiz_engine.db.session import get_db
from quiz_engine.engine.contracts import UserContext
from quiz_engine.services.user_service import ensure_user_exists


def _normalize_role(role: Optional[str]) -> Optional[str]:
    if not role:
        return None
    r = str(role).strip().lower()
    if r in {"teacher", "student"}:
        return r
    return None


def get_current_context_optional(
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Optional[UserContext]:
    """Return the caller's context from identity headers, or None when absent."""

    if not x_user_id:
        return None

    try:
        uid = int(str(x_user_id).strip())
    except ValueError:
        return None
    if uid <= 0:
        return None

    role = _normalize_role(x_user_role) or "student"
    ensure_user_exists(db, uid, role=role)
    return UserContext(user_id=uid, role=role)


def require_user(ctx: Optional[UserContext] = Depends(get_current_context_optional)) -> UserContext:
    if not ctx:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ctx


def require_teacher(ctx: UserContext = Depends(require_user)) -> UserContext:
    if not ctx.is_teacher:
        raise HTTPException(status_code=403, detail="Teacher role required")
    return ctx


def require_student(ctx: UserContext = Depends(require_user)) -> UserContext:
    if not ctx.is_student:
        raise HTTPException(status_code=403, detail="Student role required")
    return ctx
