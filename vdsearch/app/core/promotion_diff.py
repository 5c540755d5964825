"""Change detection between the last fetched promotions and an edited list."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from vdsearch.app.schemas.promotion import Promotion

logger = logging.getLogger(__name__)

_COMPARED_FIELDS = ("title", "description", "url", "queries")


@dataclass(frozen=True)
class PromotionChangeSet:
    to_insert: List[Promotion] = field(default_factory=list)
    to_update: List[Promotion] = field(default_factory=list)
    to_delete: List[Promotion] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_insert or self.to_update or self.to_delete)

    @property
    def delete_ids(self) -> List[str]:
        return [promotion.id for promotion in self.to_delete]


def promotions_equal(left: Promotion, right: Promotion) -> bool:
    """Field-by-field comparison; ``queries`` must match in order."""

    if left.id != right.id:
        return False
    for name in _COMPARED_FIELDS:
        if getattr(left, name) != getattr(right, name):
            return False
    return True


def compute_changes(snapshot: Sequence[Promotion], working_set: Sequence[Promotion]) -> PromotionChangeSet:
    originals: Dict[str, Promotion] = {promotion.id: promotion for promotion in snapshot}
    working_ids = {promotion.id for promotion in working_set}

    to_insert: List[Promotion] = []
    to_update: List[Promotion] = []
    for promotion in working_set:
        if promotion.is_temporary:
            to_insert.append(promotion)
            continue
        original = originals.get(promotion.id)
        if original is None:
            logger.warning("Ignoring promotion %s that is not part of the current snapshot", promotion.id)
            continue
        if not promotions_equal(original, promotion):
            to_update.append(promotion)

    to_delete = [promotion for promotion in snapshot if promotion.id not in working_ids]

    return PromotionChangeSet(to_insert=to_insert, to_update=to_update, to_delete=to_delete)
