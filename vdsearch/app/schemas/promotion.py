"""Models for sponsor promotions and the admin promotion endpoints."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TEMPORARY_ID_PREFIX = "new-"
MAX_QUERIES_PER_PROMOTION = 100
MAX_TITLE_LENGTH = 160
MAX_URL_LENGTH = 2000
MAX_DESCRIPTION_LENGTH = 200


class Promotion(BaseModel):
    """A sponsor link shown above results when a trigger query matches.

    Store rows carry extra columns such as ``created_at``; they are ignored.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    title: str = ""
    description: str = ""
    url: str = ""
    queries: List[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value):
        return "" if value is None else value

    @field_validator("queries", mode="before")
    @classmethod
    def _clean_queries(cls, value):
        if value is None:
            return []
        cleaned: List[str] = []
        for entry in value:
            if not isinstance(entry, str):
                continue
            trimmed = entry.strip()
            if trimmed and trimmed not in cleaned:
                cleaned.append(trimmed)
        return cleaned

    @property
    def is_temporary(self) -> bool:
        return self.id.startswith(TEMPORARY_ID_PREFIX)

    def to_row(self) -> dict:
        """Column values written to the store; the id is never written."""

        return {
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "queries": list(self.queries),
        }


class PromotionListResponse(BaseModel):
    items: List[Promotion] = Field(default_factory=list)


class PromotionSaveRequest(BaseModel):
    promotions: List[Promotion] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_promotions(self) -> "PromotionSaveRequest":
        seen: set[str] = set()
        for promotion in self.promotions:
            if promotion.id in seen:
                raise ValueError(f"Duplicate promotion id {promotion.id!r}")
            seen.add(promotion.id)
            if not promotion.title.strip() or not promotion.url.strip():
                raise ValueError("Title and URL are required.")
            if len(promotion.title) > MAX_TITLE_LENGTH:
                raise ValueError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
            if len(promotion.url) > MAX_URL_LENGTH:
                raise ValueError(f"URL must be at most {MAX_URL_LENGTH} characters")
            if len(promotion.description) > MAX_DESCRIPTION_LENGTH:
                raise ValueError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
            if len(promotion.queries) > MAX_QUERIES_PER_PROMOTION:
                raise ValueError(f"A promotion accepts at most {MAX_QUERIES_PER_PROMOTION} trigger queries")
        return self


class PromotionSaveResponse(BaseModel):
    inserted: int
    updated: int
    deleted: int


class PromotionSaveFailure(BaseModel):
    operation: str
    detail: str


__all__ = [
    "TEMPORARY_ID_PREFIX",
    "MAX_QUERIES_PER_PROMOTION",
    "Promotion",
    "PromotionListResponse",
    "PromotionSaveRequest",
    "PromotionSaveResponse",
    "PromotionSaveFailure",
]
