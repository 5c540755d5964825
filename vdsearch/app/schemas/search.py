"""Request and response models for search endpoints."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from vdsearch.app.schemas.promotion import Promotion

SearchType = Literal["all", "image"]


class SearchResultItem(BaseModel):
    title: str = ""
    link: str
    snippet: Optional[str] = None


class Coordinates(BaseModel):
    """High-accuracy coordinates reported by the browser, when granted."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class SearchRequest(BaseModel):
    query: str
    start: int = Field(default=1, ge=1)
    tab: SearchType = "all"
    coordinates: Optional[Coordinates] = None


class SearchResultEnvelope(BaseModel):
    query: str
    tab: SearchType
    start: int
    current_page: int
    total_pages: int
    items: List[SearchResultItem] = Field(default_factory=list)
    promotion: Optional[Promotion] = None
    error: Optional[str] = None


class SuggestionResponse(BaseModel):
    query: str
    suggestions: List[str] = Field(default_factory=list)


__all__ = [
    "SearchType",
    "SearchResultItem",
    "Coordinates",
    "SearchRequest",
    "SearchResultEnvelope",
    "SuggestionResponse",
]
