import pytest

from approvals.entities import EntityType


class DummyResponse:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("not json")
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []
        self.response = DummyResponse(payload={"data": []})
        self.error = None

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({
            "method": method,
            "url": url,
            "params": params,
            "json": json,
            "headers": headers,
            "timeout": timeout,
        })
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    """In-memory stand-in for MarketplaceClient."""

    def __init__(self, collections=None, errors=None):
        self.collections = collections or {}
        self.errors = errors or {}
        self.calls = []

    def fetch_collection(self, entity_type, params=None, pending=False):
        self.calls.append(("fetch", EntityType(entity_type), params, pending))
        if entity_type in self.errors:
            raise self.errors[entity_type]
        return {"data": list(self.collections.get(entity_type, []))}

    def bulk_verification(self, entity_ids, entity_type, is_verified, reason=""):
        self.calls.append(("bulk_verification", list(entity_ids), EntityType(entity_type), is_verified, reason))
        if "bulk_verification" in self.errors:
            raise self.errors["bulk_verification"]
        return {"updated": len(entity_ids)}

    def bulk_moderate(self, payload):
        self.calls.append(("bulk_moderate", payload))
        if "bulk_moderate" in self.errors:
            raise self.errors["bulk_moderate"]
        return {"updated": len(payload["listingIds"])}

    def safe_delete(self, entity_type, entity_id, reason):
        self.calls.append(("safe_delete", EntityType(entity_type), entity_id, reason))
        error = self.errors.get("safe_delete")
        if isinstance(error, dict):
            error = error.get(entity_id)
        if error is not None:
            raise error
        return {"deleted": True}

    def deactivate(self, entity_type, entity_id, reason):
        self.calls.append(("deactivate", EntityType(entity_type), entity_id, reason))
        if "deactivate" in self.errors:
            raise self.errors["deactivate"]
        return {"_id": entity_id, "isActive": False}

    def toggle_verification(self, entity_type, entity_id, is_verified, reason=""):
        self.calls.append(("toggle_verification", EntityType(entity_type), entity_id, is_verified, reason))
        failures = self.errors.get("toggle_verification")
        if failures:
            raise failures.pop(0)
        return {"_id": entity_id, "isVerified": is_verified}

    def network_calls(self):
        return [call for call in self.calls if call[0] != "fetch"]


@pytest.fixture
def vendors():
    return [
        {"id": "v1", "businessName": "Acme", "ownerName": "Ada Obi", "email": "ada@acme.test", "isVerified": False},
        {"id": "v2", "businessName": "Green Farms", "ownerName": "Ben", "email": "ben@green.test", "isVerified": True},
    ]


@pytest.fixture
def restaurants():
    return [
        {"id": "r1", "name": "Cafe Z", "createdBy": {"name": "Zoe", "email": "zoe@cafez.test"}, "isVerified": True},
    ]


@pytest.fixture
def fake_client(vendors, restaurants):
    return FakeClient(collections={
        EntityType.VENDOR: vendors,
        EntityType.RESTAURANT: restaurants,
    })


@pytest.fixture
def dummy_session():
    return DummySession()


@pytest.fixture
def make_client():
    return FakeClient


@pytest.fixture
def make_response():
    return DummyResponse
