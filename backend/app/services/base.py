# backend/app/services/base.py
"""
Shared plumbing for TuitionDesk services.

Every service owns the request's session, commits through ``transaction()``
and reports timings with ``measure_operation``.
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import DomainException, ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Base class for services working on one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the enclosed unit of work, or roll all of it back.

        Domain errors raised inside the block propagate unchanged after the
        rollback; database errors are re-raised as ``ServiceException``.

        Usage:
            with self.transaction():
                lessons = self.lesson_repository.cancel_lessons(...)
                adjustment.mark_confirmed(...)
        """
        try:
            yield self.db
            self.db.commit()
        except DomainException as e:
            self.db.rollback()
            self.logger.info("Rolled back after %s: %s", type(e).__name__, e.message)
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error("Transaction failed, rolled back: %s", e)
            raise ServiceException(f"Database operation failed: {e}") from e
        except Exception as e:
            self.db.rollback()
            self.logger.error("Unexpected error in transaction, rolled back: %s", e)
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and record it in Prometheus.

        Usage:
            @BaseService.measure_operation("confirm_term_adjustment")
            def confirm(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning("Slow operation %s took %.2fs", operation_name, elapsed)
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="error" if error_type else "success",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a completed operation with its key identifiers."""
        details = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        self.logger.info("%s %s", operation, details, extra={"operation": operation})
