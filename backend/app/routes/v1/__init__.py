# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import prometheus, term_adjustments

__all__ = [
    "prometheus",
    "term_adjustments",
]
