import copy

from approvals.entities import EntityType
from approvals.merge import merge_results


def test_vendors_before_restaurants_in_source_order(vendors, restaurants):
    merged = merge_results([
        (EntityType.VENDOR, {"data": vendors}),
        (EntityType.RESTAURANT, {"data": restaurants}),
    ])
    assert [entity.key for entity in merged] == [("vendor", "v1"), ("vendor", "v2"), ("restaurant", "r1")]


def test_absent_sources_contribute_nothing(vendors):
    merged = merge_results([
        (EntityType.VENDOR, {"data": vendors}),
        (EntityType.RESTAURANT, None),
        (EntityType.LISTING, {"data": None}),
    ])
    assert len(merged) == 2
    assert all(entity is not None for entity in merged)


def test_all_sources_absent():
    assert merge_results([(EntityType.VENDOR, None), (EntityType.RESTAURANT, None)]) == []


def test_same_id_in_different_types_kept_apart():
    merged = merge_results([
        (EntityType.VENDOR, {"data": [{"id": "1", "businessName": "A"}]}),
        (EntityType.RESTAURANT, {"data": [{"id": "1", "name": "B"}]}),
    ])
    assert {entity.key for entity in merged} == {("vendor", "1"), ("restaurant", "1")}


def test_does_not_mutate_sources(vendors, restaurants):
    before = copy.deepcopy([vendors, restaurants])
    merge_results(
        [(EntityType.VENDOR, {"data": vendors}), (EntityType.RESTAURANT, {"data": restaurants})],
        sort_by="name",
    )
    assert [vendors, restaurants] == before


def test_idempotent(vendors, restaurants):
    sources = [(EntityType.VENDOR, {"data": vendors}), (EntityType.RESTAURANT, {"data": restaurants})]
    assert merge_results(sources) == merge_results(sources)


def test_optional_sort_by_name(vendors, restaurants):
    merged = merge_results(
        [(EntityType.VENDOR, {"data": vendors}), (EntityType.RESTAURANT, {"data": restaurants})],
        sort_by="name",
    )
    assert [entity.name for entity in merged] == ["Acme", "Cafe Z", "Green Farms"]
