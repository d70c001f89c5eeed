# backend/app/api/dependencies/database.py
"""
Database session dependency.

Routes depend on this name so tests can swap the session through
``app.dependency_overrides[get_db]``.
"""

from typing import Iterator

from sqlalchemy.orm import Session

from ...database import SessionLocal


def get_db() -> Iterator[Session]:
    """Yield a request-scoped session, rolled back if left uncommitted."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
