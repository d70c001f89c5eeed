# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.org_config_provider import DatabaseOrgConfigProvider, OrgConfigProvider
from ...services.term_adjustment_calculator import TermAdjustmentCalculator
from ...services.term_adjustment_workflow import TermAdjustmentWorkflow
from .database import get_db

logger = logging.getLogger(__name__)


def get_org_config_provider(db: Session = Depends(get_db)) -> OrgConfigProvider:
    """Get the organisation configuration provider backed by the database."""
    return DatabaseOrgConfigProvider(db)


def get_term_adjustment_calculator(
    db: Session = Depends(get_db),
    config_provider: OrgConfigProvider = Depends(get_org_config_provider),
) -> TermAdjustmentCalculator:
    """
    Get term adjustment calculator instance.

    Args:
        db: Database session
        config_provider: Source of org billing settings, rate cards and closures

    Returns:
        TermAdjustmentCalculator instance
    """
    return TermAdjustmentCalculator(db, config_provider=config_provider)


def get_term_adjustment_workflow(
    db: Session = Depends(get_db),
    config_provider: OrgConfigProvider = Depends(get_org_config_provider),
) -> TermAdjustmentWorkflow:
    """Get term adjustment workflow instance."""
    return TermAdjustmentWorkflow(db, config_provider=config_provider)
