"""Database dependencies for FastAPI endpoints."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from app.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a read-only session for one request.

    Report endpoints never write, so whatever the request did is rolled back
    before the connection returns to the pool.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
