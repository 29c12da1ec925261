"""SQLAlchemy engine, session factory and declarative base."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings
from ..core.errors import BackendUnavailableError, ValidationError

DATABASE_URL = settings.database_url

# SQLite connections are shared across FastAPI worker threads and the
# scheduler thread. Other engines ignore this argument.
CONNECT_ARGS = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=CONNECT_ARGS, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Session for code running outside a request, such as scheduled jobs."""

    db = factory()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session) -> None:
    """Commit, rolling back and translating driver failures into domain errors."""

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("The change conflicts with existing data", details={"error": str(exc.orig)}) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise BackendUnavailableError("The inventory database rejected the write") from exc
