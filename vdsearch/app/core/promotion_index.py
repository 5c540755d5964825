from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from vdsearch.app.schemas.promotion import Promotion
from vdsearch.app.utils.query_utils import normalize_query


class PromotionIndex:
    """Read-only mapping from normalized trigger query to promotion.

    When several promotions claim the same normalized query, the promotion
    seen last during :meth:`rebuild` wins.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[str, Promotion]] = None) -> None:
        self._entries: Mapping[str, Promotion] = MappingProxyType(dict(entries or {}))

    @classmethod
    def rebuild(cls, promotions: Iterable[Promotion]) -> "PromotionIndex":
        entries: dict[str, Promotion] = {}
        for promotion in promotions:
            for query in promotion.queries:
                key = normalize_query(query)
                if key:
                    entries[key] = promotion
        return cls(entries)

    def lookup(self, query: Optional[str]) -> Optional[Promotion]:
        key = normalize_query(query)
        if not key:
            return None
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: object) -> bool:
        return isinstance(query, str) and normalize_query(query) in self._entries

    @property
    def queries(self) -> list[str]:
        return sorted(self._entries)
