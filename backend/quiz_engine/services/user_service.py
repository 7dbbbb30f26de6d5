from __future__ import annotations

import logging

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from quiz_engine.core.errors import PersistenceFailure
from quiz_engine.models.user import User

logger = logging.getLogger(__name__)


def ensure_user_exists(db: Session, user_id: int, *, role: str = "student") -> User:
    """Ensure a user row exists for a given numeric ID.

    Identity comes from the caller's headers, but quizzes and results keep a
    foreign key to ``users``. This helper creates a minimal row when missing.
    The stored role is not rewritten for existing users.
    """

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user:
        return user

    uid = int(user_id)
    email = f"{role}{uid}@quiz.local"

    # Keep the email unique if a row already claims it.
    if db.query(User).filter(User.email == email).first():
        email = f"{role}{uid}-{uid}@quiz.local"

    user = User(id=uid, email=email, full_name=f"{role.title()} {uid}", role=role)
    db.add(user)
    try:
        db.commit()
    except sa_exc.SQLAlchemyError as e:
        db.rollback()
        logger.error("ensure_user_exists(%s) failed: %s", uid, e)
        raise PersistenceFailure("Could not register user", details={"user_id": uid}) from e
    db.refresh(user)
    return user
