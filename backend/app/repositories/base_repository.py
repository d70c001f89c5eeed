# backend/app/repositories/base_repository.py
"""
Base Repository for the TuitionDesk backend.

Repositories never commit: the owning service decides when a unit of work
ends. Every organisation-owned model carries ``org_id``, so lookups that
cross the API boundary go through ``get_for_org``.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.database.session_utils import supports_row_locks

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Generic data access for one model.

    Attributes:
        db: Session owned by the calling service
        model: Mapped class this repository reads and writes
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def supports_row_locks(self) -> bool:
        """True when the bound dialect honours ``SELECT ... FOR UPDATE``."""
        return supports_row_locks(self.db)

    def get_by_id(self, id: str) -> Optional[T]:
        return self._execute_first(self.db.query(self.model).filter(self.model.id == id))

    def get_for_org(self, id: str, org_id: str) -> Optional[T]:
        """Fetch by primary key, or None when the row belongs to another organisation."""
        query = self.db.query(self.model).filter(self.model.id == id, self.model.org_id == org_id)
        return self._execute_first(query)

    def find_one_by(self, **criteria: Any) -> Optional[T]:
        return self._execute_first(self.db.query(self.model).filter_by(**criteria))

    def create(self, **fields: Any) -> T:
        """Add a row and flush so its generated id is available. Does not commit."""
        entity = self.model(**fields)
        self._flush_new([entity])
        return entity

    def create_many(self, rows: List[Dict[str, Any]]) -> List[T]:
        """Add several rows in one flush, returned in input order."""
        if not rows:
            return []
        entities = [self.model(**data) for data in rows]
        self._flush_new(entities)
        return entities

    def flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error("Flush failed for %s: %s", self.model.__name__, e)
            raise RepositoryException(f"Failed to write {self.model.__name__}: {e}") from e

    # Helpers for subclasses

    def _flush_new(self, entities: List[T]) -> None:
        try:
            self.db.add_all(entities)
            self.db.flush()
        except IntegrityError as e:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, e)
            raise RepositoryException(f"Integrity constraint violated: {e}") from e
        except SQLAlchemyError as e:
            self.logger.error("Error creating %s: %s", self.model.__name__, e)
            raise RepositoryException(f"Failed to create {self.model.__name__}: {e}") from e

    def _execute_query(self, query: Query) -> List[Any]:
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error("Query on %s failed: %s", self.model.__name__, e)
            raise RepositoryException(f"Query failed: {e}") from e

    def _execute_first(self, query: Query) -> Optional[Any]:
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error("Query on %s failed: %s", self.model.__name__, e)
            raise RepositoryException(f"Query failed: {e}") from e
