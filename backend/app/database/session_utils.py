"""
Dialect checks for code that must behave the same on PostgreSQL and SQLite.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

ROW_LOCK_DIALECTS = frozenset({"postgresql"})


def supports_row_locks(session: Session) -> bool:
    """
    True when ``SELECT ... FOR UPDATE`` serialises writers on this session's database.

    SQLite (the test database) locks the whole file on write, so lock hints
    are skipped there.
    """
    return session.get_bind().dialect.name in ROW_LOCK_DIALECTS
