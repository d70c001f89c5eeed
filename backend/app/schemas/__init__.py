# backend/app/schemas/__init__.py
"""
Pydantic schemas for the TuitionDesk API.
"""

from .term_adjustment import (
    ExistingTermInvoice,
    TermAdjustmentConfirmRequest,
    TermAdjustmentConfirmResponse,
    TermAdjustmentListResponse,
    TermAdjustmentPreviewRequest,
    TermAdjustmentPreviewResponse,
    TermAdjustmentRequest,
    TermAdjustmentSummary,
)

__all__ = [
    # Requests
    "TermAdjustmentPreviewRequest",
    "TermAdjustmentConfirmRequest",
    "TermAdjustmentRequest",
    # Responses
    "ExistingTermInvoice",
    "TermAdjustmentPreviewResponse",
    "TermAdjustmentConfirmResponse",
    "TermAdjustmentSummary",
    "TermAdjustmentListResponse",
]
