from __future__ import annotations

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from quiz_engine.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite has no real pool; FastAPI runs sync routes in a threadpool.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_timeout": settings.DB_POOL_TIMEOUT_SEC}


engine = create_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
