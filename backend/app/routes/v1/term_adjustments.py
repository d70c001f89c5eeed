"""V1 term adjustment endpoints: preview, confirm and history."""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...api.dependencies import (
    OrgActor,
    ensure_org_role,
    get_current_user,
    get_db,
    get_term_adjustment_calculator,
    get_term_adjustment_workflow,
    require_term_adjustment_access,
)
from ...schemas.term_adjustment import (
    TermAdjustmentConfirmRequest,
    TermAdjustmentConfirmResponse,
    TermAdjustmentListResponse,
    TermAdjustmentPreviewResponse,
    TermAdjustmentRequest,
    TermAdjustmentSummary,
)
from ...services.term_adjustment_calculator import TermAdjustmentCalculator
from ...services.term_adjustment_workflow import TermAdjustmentWorkflow

logger = logging.getLogger(__name__)

# V1 router - mounted at /api/v1/term-adjustment
router = APIRouter(tags=["term-adjustments"])


@router.post(
    "",
    response_model=Union[TermAdjustmentPreviewResponse, TermAdjustmentConfirmResponse],
)
def process_term_adjustment(
    payload: TermAdjustmentRequest = Body(...),
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    calculator: TermAdjustmentCalculator = Depends(get_term_adjustment_calculator),
    workflow: TermAdjustmentWorkflow = Depends(get_term_adjustment_workflow),
) -> Union[TermAdjustmentPreviewResponse, TermAdjustmentConfirmResponse]:
    """
    Preview or confirm a term adjustment.

    ``action: "preview"`` calculates the adjustment and stores a draft;
    ``action: "confirm"`` applies a stored draft exactly once.
    """
    actor = ensure_org_role(db, user_id=user_id, org_id=payload.org_id)

    if isinstance(payload, TermAdjustmentConfirmRequest):
        result = workflow.confirm(
            payload.org_id,
            payload.adjustment_id,
            actor.user_id,
            generate_credit_note=payload.generate_credit_note,
            actor_role=actor.role,
        )
        return TermAdjustmentConfirmResponse(**result)

    preview = calculator.preview(payload, actor.user_id)
    return TermAdjustmentPreviewResponse(**preview)


@router.get("", response_model=TermAdjustmentListResponse)
def list_term_adjustments(
    student_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    actor: OrgActor = Depends(require_term_adjustment_access),
    workflow: TermAdjustmentWorkflow = Depends(get_term_adjustment_workflow),
) -> TermAdjustmentListResponse:
    """List confirmed term adjustments for an organisation, newest first."""
    items = workflow.list_confirmed(actor.org_id, student_id=student_id, limit=limit)
    return TermAdjustmentListResponse(
        items=[TermAdjustmentSummary(**item) for item in items],
        total=len(items),
    )
