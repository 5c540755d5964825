from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vdsearch.app.auth.dependencies import AuthContext, require_admin_user
from vdsearch.app.core.history_service import SearchHistoryService
from vdsearch.app.core.promotion_service import PromotionSaveError, PromotionService
from vdsearch.app.dependencies import get_history_service_dep, get_promotion_service_dep
from vdsearch.app.schemas.history import SearchHistoryResponse
from vdsearch.app.schemas.promotion import (
    PromotionListResponse,
    PromotionSaveRequest,
    PromotionSaveResponse,
)
from vdsearch.app.store import StoreError

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/status")
async def admin_status(auth: AuthContext = Depends(require_admin_user)) -> dict[str, str]:
    """Simple admin health endpoint protected by the admin token."""

    return {"status": "ok", "subject": auth.subject, "role": auth.role}


@router.get(
    "/promotions",
    response_model=PromotionListResponse,
    dependencies=[Depends(require_admin_user)],
)
async def list_promotions(
    service: PromotionService = Depends(get_promotion_service_dep),
) -> PromotionListResponse:
    try:
        promotions = await service.fetch_all()
    except StoreError as exc:
        logger.error("Error fetching promotions: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to refresh promotions.") from exc
    return PromotionListResponse(items=promotions)


@router.put(
    "/promotions",
    response_model=PromotionSaveResponse,
    dependencies=[Depends(require_admin_user)],
)
async def save_promotions(
    payload: PromotionSaveRequest,
    service: PromotionService = Depends(get_promotion_service_dep),
) -> PromotionSaveResponse:
    try:
        changes = await service.save_promotions(payload.promotions)
    except PromotionSaveError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": "Failed to save promotions.",
                "failures": [failure.model_dump() for failure in exc.failures],
            },
        ) from exc
    except StoreError as exc:
        logger.error("Error loading promotions before save: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save promotions.") from exc

    return PromotionSaveResponse(
        inserted=len(changes.to_insert),
        updated=len(changes.to_update),
        deleted=len(changes.to_delete),
    )


@router.get(
    "/history",
    response_model=SearchHistoryResponse,
    dependencies=[Depends(require_admin_user)],
)
async def list_search_history(
    service: SearchHistoryService = Depends(get_history_service_dep),
) -> SearchHistoryResponse:
    try:
        records = await service.fetch_search_history()
    except StoreError as exc:
        logger.error("Error fetching search history: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load search history.") from exc
    return SearchHistoryResponse(items=records)
