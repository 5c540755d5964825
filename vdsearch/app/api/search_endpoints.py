# app/api/search_endpoints.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from vdsearch.app.core.search_service import SearchService
from vdsearch.app.dependencies import get_search_service_dep
from vdsearch.app.schemas.search import SearchRequest, SearchResultEnvelope, SuggestionResponse

router = APIRouter(tags=["search"])
logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # A comma-separated chain of IPs may be present; use the originating address.
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/search", response_model=SearchResultEnvelope)
async def search(
    request: Request,
    payload: SearchRequest,
    search_service: SearchService = Depends(get_search_service_dep),
) -> SearchResultEnvelope:
    if not payload.query.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")

    envelope = await search_service.execute_search(
        payload.query,
        start=payload.start,
        tab=payload.tab,
        client_ip=_client_ip(request),
        coordinates=payload.coordinates,
    )
    if envelope is None:
        raise HTTPException(status_code=400, detail="Query must not be empty")
    return envelope


@router.get("/search/suggestions", response_model=SuggestionResponse)
async def suggestions(
    q: str = Query(default=""),
    search_service: SearchService = Depends(get_search_service_dep),
) -> SuggestionResponse:
    return SuggestionResponse(query=q, suggestions=await search_service.fetch_suggestions(q))
