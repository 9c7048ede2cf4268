"""
Auto-pick API routes.

POST /api/auto-pick/generate          - build a basket draft
GET  /api/auto-pick/drafts/{draft_id} - read an own draft
POST /api/auto-pick/apply/{draft_id}  - copy a draft into the cart
"""

from typing import Optional
from fastapi import APIRouter, Depends
import structlog

from exceptions import DraftNotFoundError
from models.auto_pick import (
    ApplyDraftRequest,
    ApplyDraftResponse,
    AutoPickDraft,
    AutoPickRequest,
    AutoPickResult,
)
from routes.deps import current_user_id, verify_api_key
from services.auto_pick_service import get_auto_pick_service
from services.draft_service import get_draft_service

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/auto-pick",
    tags=["Auto-pick"],
    dependencies=[Depends(verify_api_key)],
)


@router.post("/generate", response_model=AutoPickResult)
async def generate(
    body: AutoPickRequest,
    user_id: int = Depends(current_user_id),
) -> AutoPickResult:
    """
    Generate a basket for the caller.

    Errors (AppError format):
        422 AUTO_PICK_INVALID_BUDGET: malformed bounds
        422 AUTO_PICK_UNSATISFIABLE: nothing matches the filters
        422 AUTO_PICK_BUDGET_NOT_REACHABLE: total below min_sum
    """
    logger.info("auto_pick_generate_request", user_id=user_id)

    service = get_auto_pick_service()
    return await service.generate(user_id, body)


@router.get("/drafts/{draft_id}", response_model=AutoPickDraft)
def get_draft(
    draft_id: str,
    user_id: int = Depends(current_user_id),
) -> AutoPickDraft:
    """
    Get one of the caller's drafts.

    Raises:
        404: Draft not found or owned by someone else
    """
    draft = get_auto_pick_service().get_draft(draft_id, user_id)
    if draft is None:
        raise DraftNotFoundError(draft_id)
    return draft


@router.post("/apply/{draft_id}", response_model=ApplyDraftResponse)
def apply_draft(
    draft_id: str,
    body: Optional[ApplyDraftRequest] = None,
    user_id: int = Depends(current_user_id),
) -> ApplyDraftResponse:
    """
    Apply a pending draft to the caller's cart.

    Errors (AppError format):
        404 not found, 403 not owned, 409 already processed, 410 expired
    """
    store_id = body.store_id if body else None
    logger.info("auto_pick_apply_request", draft_id=draft_id, user_id=user_id, store_id=store_id)

    return get_draft_service().apply_draft(draft_id, user_id, store_id)
