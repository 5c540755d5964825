from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserLocation(BaseModel):
    ip: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SearchHistoryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    created_at: str
    query: str
    ip_address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SearchHistoryResponse(BaseModel):
    items: List[SearchHistoryRecord] = Field(default_factory=list)
