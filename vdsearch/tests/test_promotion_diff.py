from __future__ import annotations

from vdsearch.app.core.promotion_diff import compute_changes, promotions_equal
from vdsearch.app.schemas.promotion import Promotion


def _snapshot() -> list[Promotion]:
    return [
        Promotion(id="1", title="A", url="u", queries=["x"]),
        Promotion(id="2", title="B", description="desc", url="v", queries=["y", "z"]),
    ]


def test_added_promotion_goes_to_insert_set() -> None:
    snapshot = [Promotion(id="1", title="A", url="u", queries=["x"])]
    working = [
        Promotion(id="new-1", title="B", url="v", queries=["y"]),
        Promotion(id="1", title="A", url="u", queries=["x"]),
    ]

    changes = compute_changes(snapshot, working)

    assert [promo.to_row() for promo in changes.to_insert] == [
        {"title": "B", "description": "", "url": "v", "queries": ["y"]}
    ]
    assert "id" not in changes.to_insert[0].to_row()
    assert changes.to_update == []
    assert changes.to_delete == []


def test_unchanged_working_set_yields_no_changes() -> None:
    snapshot = _snapshot()
    working = [promo.model_copy(deep=True) for promo in snapshot]

    changes = compute_changes(snapshot, working)

    assert changes.is_empty


def test_edited_field_goes_to_update_set() -> None:
    snapshot = _snapshot()
    working = [promo.model_copy(deep=True) for promo in snapshot]
    working[1] = working[1].model_copy(update={"description": "changed"})

    changes = compute_changes(snapshot, working)

    assert [promo.id for promo in changes.to_update] == ["2"]
    assert changes.to_insert == [] and changes.to_delete == []


def test_reordered_queries_count_as_update() -> None:
    snapshot = _snapshot()
    working = [promo.model_copy(deep=True) for promo in snapshot]
    working[1] = working[1].model_copy(update={"queries": ["z", "y"]})

    changes = compute_changes(snapshot, working)

    assert [promo.id for promo in changes.to_update] == ["2"]


def test_removed_promotion_goes_to_delete_set() -> None:
    snapshot = _snapshot()
    working = [snapshot[0].model_copy(deep=True)]

    changes = compute_changes(snapshot, working)

    assert changes.delete_ids == ["2"]
    assert changes.to_insert == [] and changes.to_update == []


def test_unknown_durable_id_is_ignored() -> None:
    snapshot = _snapshot()
    working = [promo.model_copy(deep=True) for promo in snapshot]
    working.append(Promotion(id="ghost", title="G", url="g", queries=[]))

    changes = compute_changes(snapshot, working)

    assert changes.is_empty


def test_sets_partition_mixed_edits() -> None:
    snapshot = _snapshot() + [Promotion(id="3", title="C", url="w", queries=["q"])]
    working = [
        Promotion(id="new-a", title="N1", url="n1", queries=["n"]),
        Promotion(id="new-b", title="N2", url="n2", queries=[]),
        Promotion(id="1", title="A", url="u", queries=["x"]),
        Promotion(id="2", title="B (edited)", description="desc", url="v", queries=["y", "z"]),
    ]

    changes = compute_changes(snapshot, working)

    inserted = {promo.id for promo in changes.to_insert}
    updated = {promo.id for promo in changes.to_update}
    deleted = set(changes.delete_ids)

    assert inserted == {"new-a", "new-b"}
    assert updated == {"2"}
    assert deleted == {"3"}
    assert not (inserted & updated or inserted & deleted or updated & deleted)


def test_promotions_equal_compares_every_field() -> None:
    base = Promotion(id="1", title="A", description="d", url="u", queries=["x", "y"])

    assert promotions_equal(base, base.model_copy(deep=True))
    assert not promotions_equal(base, base.model_copy(update={"url": "other"}))
    assert not promotions_equal(base, base.model_copy(update={"queries": ["x"]}))
    assert not promotions_equal(base, base.model_copy(update={"id": "2"}))
