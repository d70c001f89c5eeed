# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_user
from .authz import OrgActor, ensure_org_role, require_term_adjustment_access
from .database import get_db
from .services import (
    get_org_config_provider,
    get_term_adjustment_calculator,
    get_term_adjustment_workflow,
)

__all__ = [
    # Auth
    "get_current_user",
    "OrgActor",
    "ensure_org_role",
    "require_term_adjustment_access",
    # Database
    "get_db",
    # Services
    "get_org_config_provider",
    "get_term_adjustment_calculator",
    "get_term_adjustment_workflow",
]
