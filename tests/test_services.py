import pytest

from approvals.entities import EntityType
from approvals.exceptions import (
    DependencyConflict,
    NetworkFailure,
    UnknownServerError,
    ValidationFailure,
)
from approvals.query import FilterState
from approvals.selection import SelectionSet
from approvals.services import (
    deactivate_entity,
    is_transient,
    load_moderation_queue,
    load_verification_dashboard,
    safe_delete_entity,
    verify_entity,
)


def test_dashboard_scenario(make_client):
    client = make_client(collections={
        EntityType.VENDOR: [{"id": "v1", "businessName": "Acme", "isVerified": False}],
        EntityType.RESTAURANT: [{"id": "r1", "name": "Cafe Z", "isVerified": True}],
    })

    result = load_verification_dashboard(client, FilterState(status="pending"))

    assert [entity.key for entity in result.page.items] == [("vendor", "v1")]
    assert result.stats.total == 2
    assert result.stats.pending == 1
    assert result.stats.verified == 1
    assert result.stats.vendors == 1
    assert result.stats.restaurants == 1


def test_both_sources_fetched_with_merged_paging(fake_client):
    load_verification_dashboard(fake_client, FilterState(status="pending", page=3))

    fetched = {call[1]: call for call in fake_client.calls}
    assert set(fetched) == {EntityType.VENDOR, EntityType.RESTAURANT}
    for _, _, params, pending in fetched.values():
        assert pending is True
        assert params["page"] == 1
        assert params["limit"] == 100


def test_vendors_tab_skips_restaurants(fake_client):
    result = load_verification_dashboard(fake_client, FilterState(status="all", tab="vendors"))

    assert [call[1] for call in fake_client.calls] == [EntityType.VENDOR]
    assert result.stats.restaurants == 0
    assert all(entity.type == EntityType.VENDOR for entity in result.entities)


def test_failed_source_does_not_block_others(vendors, make_client):
    client = make_client(
        collections={EntityType.VENDOR: vendors},
        errors={EntityType.RESTAURANT: NetworkFailure()},
    )

    result = load_verification_dashboard(client, FilterState(status="all"))

    assert result.stats.vendors == 2
    assert result.errors == {"restaurant": NetworkFailure.default_message}


def test_selection_pruned_after_refetch(fake_client):
    selection = SelectionSet([("vendor", "v1"), ("vendor", "gone")])

    result = load_verification_dashboard(fake_client, FilterState(status="all"), selection=selection)

    assert ("vendor", "gone") not in selection
    assert ("vendor", "v1") in selection
    assert result.pruned == {("vendor", "gone")}


def test_selection_kept_for_source_that_failed(vendors, make_client):
    client = make_client(
        collections={EntityType.VENDOR: vendors},
        errors={EntityType.RESTAURANT: NetworkFailure()},
    )
    selection = SelectionSet([("restaurant", "r1")])

    load_verification_dashboard(client, FilterState(status="all"), selection=selection)

    assert ("restaurant", "r1") in selection


def test_search_and_page_size(make_client):
    client = make_client(collections={
        EntityType.VENDOR: [{"id": f"v{i}", "businessName": f"Shop {i}"} for i in range(30)],
    })

    result = load_verification_dashboard(client, FilterState(status="all", tab="vendors", page=3, page_size=12))

    assert len(result.page.items) == 6
    assert result.page.total_pages == 3
    assert result.as_dict()["pagination"]["hasNext"] is False


def test_sorting_by_name(make_client):
    client = make_client(collections={
        EntityType.VENDOR: [{"id": "1", "businessName": "Zest"}, {"id": "2", "businessName": "apple"}],
    })
    result = load_verification_dashboard(
        client, FilterState(status="all", tab="vendors"), sort_by="name", sort_order="asc"
    )
    assert [entity.name for entity in result.page.items] == ["apple", "Zest"]


def test_moderation_queue_loads_listings(make_client):
    client = make_client(collections={
        EntityType.LISTING: [{"_id": "l1", "product": {"name": "Tomatoes"}, "vendor": {"businessName": "Acme"}}],
    })

    result = load_moderation_queue(client, FilterState(status="all", search="acme"))

    assert [entity.key for entity in result.page.items] == [("listing", "l1")]
    assert result.stats.listings == 1


# ============ Single-entity actions ============

def test_verify_retries_transient_failures(make_client):
    client = make_client(errors={"toggle_verification": [UnknownServerError("transaction aborted", 500)]})
    sleeps = []

    record = verify_entity(client, "vendor", "v1", True, max_retries=2, retry_delay=1.0, sleep=sleeps.append)

    assert record == {"_id": "v1", "isVerified": True}
    assert sleeps == [1.0]
    assert len(client.network_calls()) == 2


def test_verify_reports_attempts_when_giving_up(make_client):
    client = make_client(errors={"toggle_verification": [
        UnknownServerError("Server error", 500),
        UnknownServerError("Server error", 500),
    ]})

    with pytest.raises(UnknownServerError) as excinfo:
        verify_entity(client, "restaurant", "r1", True, max_retries=2, retry_delay=0, sleep=lambda _: None)

    assert excinfo.value.message == "Server error (after 2 attempts)"


def test_verify_does_not_retry_other_errors(make_client):
    client = make_client(errors={"toggle_verification": [UnknownServerError("Not found", 404)]})

    with pytest.raises(UnknownServerError):
        verify_entity(client, "vendor", "v1", True, sleep=lambda _: None)

    assert len(client.network_calls()) == 1


def test_revoking_verification_requires_reason(make_client):
    client = make_client()
    with pytest.raises(ValidationFailure):
        verify_entity(client, "vendor", "v1", False, reason=" ")
    assert client.network_calls() == []


def test_is_transient():
    assert is_transient(UnknownServerError("abortTransaction", 400))
    assert is_transient(UnknownServerError("oops", 500))
    assert not is_transient(UnknownServerError("bad", 400))
    assert not is_transient(NetworkFailure())


@pytest.mark.parametrize("action", [deactivate_entity, safe_delete_entity])
def test_destructive_actions_need_reason(make_client, action):
    client = make_client()
    with pytest.raises(ValidationFailure):
        action(client, "restaurant", "r1", "")
    assert client.network_calls() == []


@pytest.mark.parametrize("action", [deactivate_entity, safe_delete_entity])
def test_destructive_actions_reject_listings(make_client, action):
    with pytest.raises(ValidationFailure):
        action(make_client(), "listing", "l1", "spam")


def test_dependency_conflict_propagates(make_client):
    conflict = DependencyConflict(
        "Restaurant has active orders",
        dependencies={"count": 2, "type": "orders"},
        suggestions=["Wait for orders to complete"],
    )
    client = make_client(errors={"safe_delete": conflict})

    with pytest.raises(DependencyConflict) as excinfo:
        safe_delete_entity(client, "restaurant", "r1", "closing")

    assert excinfo.value.dependencies == {"count": 2, "type": "orders"}


def test_deactivate_strips_reason(make_client):
    client = make_client()
    deactivate_entity(client, "vendor", "v1", "  fraud  ")
    assert client.network_calls() == [("deactivate", EntityType.VENDOR, "v1", "fraud")]
