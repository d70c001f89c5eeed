# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the TuitionDesk backend.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- LessonRepository / RecurrenceRuleRepository: lesson series and occurrences
- TermAdjustmentRepository: draft and confirmed term adjustments
- InvoiceRepository: invoices, credit notes and their items

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    lessons = RepositoryFactory.create_lesson_repository(db)
    remaining = lessons.get_scheduled_for_recurrence(...)
"""

from .base_repository import BaseRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "RepositoryFactory"]
