"""Tests for the reference API server — REST contract for every resource kind."""

import pytest

from conftest import make_rule
from pbx_console.schemas.kinds import RESOURCE_KINDS


def _route_body(rule_id: str, **fields) -> dict:
    return make_rule(rule_id, **fields).model_dump(mode="json")


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "pbx-console-reference", "version": "0.1.0"}


@pytest.mark.parametrize("kind", RESOURCE_KINDS.values(), ids=list(RESOURCE_KINDS))
def test_every_kind_is_mounted(client, kind):
    response = client.get(f"/api/v1/{kind.path}")
    assert response.status_code == 200
    assert response.json() == {kind.list_key: [], "total": 0}


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestCrud:
    def test_create_and_get(self, client):
        response = client.post("/api/v1/routes", json=_route_body("r1"))
        assert response.status_code == 201
        assert response.json() == {"success": True, "message": "Route created successfully", "id": "r1"}

        response = client.get("/api/v1/routes/r1")
        assert response.status_code == 200
        assert response.json()["name"] == "r1"

    def test_get_unknown(self, client):
        response = client.get("/api/v1/routes/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Route not found"

    def test_duplicate_id(self, client):
        client.post("/api/v1/routes", json=_route_body("r1"))
        response = client.post("/api/v1/routes", json=_route_body("r1", name="Other"))
        assert response.status_code == 409

    def test_duplicate_name(self, client):
        client.post("/api/v1/routes", json=_route_body("r1", name="Main"))
        response = client.post("/api/v1/routes", json=_route_body("r2", name="Main"))
        assert response.status_code == 409

    def test_invalid_body(self, client):
        body = _route_body("r1")
        body["pattern"] = "[0-9"
        response = client.post("/api/v1/routes", json=body)
        assert response.status_code == 422

    def test_update(self, client):
        client.post("/api/v1/routes", json=_route_body("r1"))
        response = client.put("/api/v1/routes/r1", json=_route_body("r1", enabled=False))
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/api/v1/routes/r1").json()["enabled"] is False

    def test_update_unknown(self, client):
        response = client.put("/api/v1/routes/nope", json=_route_body("nope"))
        assert response.status_code == 404

    def test_delete(self, client):
        client.post("/api/v1/ring-groups", json={"id": "rg1", "name": "Sales", "extensions": ["1001"]})
        response = client.delete("/api/v1/ring-groups/rg1")
        assert response.status_code == 200
        assert response.json()["message"] == "Ring group deleted successfully"
        assert client.get("/api/v1/ring-groups").json()["total"] == 0

    def test_delete_unknown(self, client):
        assert client.delete("/api/v1/trunks/nope").status_code == 404

    def test_codec_keyed_by_name(self, client):
        response = client.post("/api/v1/codecs", json={"name": "opus", "payload_type": 111})
        assert response.json()["id"] == "opus"


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------


class TestReorder:
    @pytest.fixture(autouse=True)
    def _seed(self, client):
        for rule_id in ("a", "b", "c", "d"):
            client.post("/api/v1/routes", json=_route_body(rule_id, priority=9))

    def test_move_and_renumber(self, client):
        response = client.post("/api/v1/routes/reorder", json={"from_index": 0, "to_index": 2})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [r["id"] for r in body["routes"]] == ["b", "c", "a", "d"]
        assert [r["priority"] for r in body["routes"]] == [0, 1, 2, 3]

    def test_list_reflects_reorder(self, client):
        client.post("/api/v1/routes/reorder", json={"from_index": 3, "to_index": 0})
        listed = client.get("/api/v1/routes").json()["routes"]
        assert [r["id"] for r in listed] == ["d", "a", "b", "c"]

    @pytest.mark.parametrize(("from_index", "to_index"), [(4, 0), (0, 4), (10, 10)])
    def test_out_of_range(self, client, from_index, to_index):
        response = client.post("/api/v1/routes/reorder", json={"from_index": from_index, "to_index": to_index})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid index"

    def test_negative_index(self, client):
        response = client.post("/api/v1/routes/reorder", json={"from_index": -1, "to_index": 0})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Route test
# ---------------------------------------------------------------------------


class TestRouteTest:
    def test_scenarios(self, client, sample_rules):
        for rule in sample_rules:
            client.post("/api/v1/routes", json=rule.model_dump(mode="json"))

        internal = client.post("/api/v1/routes/test", json={"caller_id": "+1555", "destination": "1001"}).json()
        assert internal == {
            "success": True,
            "matched": True,
            "route_id": "rule-internal",
            "route_name": "Internal",
            "destination": {"type": "Extension", "value": "1000"},
            "action": "accept",
        }

        pstn = client.post("/api/v1/routes/test", json={"caller_id": "+1555", "destination": "9999"}).json()
        assert pstn["route_id"] == "rule-pstn"

        nothing = client.post("/api/v1/routes/test", json={"caller_id": "+1555", "destination": "abc"}).json()
        assert nothing == {"success": True, "matched": False, "message": "No route matched"}

    def test_uses_server_clock(self, client, clock):
        rule = _route_body("hours", conditions=[{"type": "Time", "start_time": "09:00", "end_time": "17:00"}])
        client.post("/api/v1/routes", json=rule)

        assert client.post("/api/v1/routes/test", json={"caller_id": "+1", "destination": "1"}).json()["matched"]

        clock.current = clock.current.replace(hour=18)
        assert not client.post("/api/v1/routes/test", json={"caller_id": "+1", "destination": "1"}).json()["matched"]

    def test_hangup_destination_has_no_value(self, client):
        client.post("/api/v1/routes", json=_route_body("block", action="reject", destination={"type": "Hangup"}))
        body = client.post("/api/v1/routes/test", json={"caller_id": "+1", "destination": "1"}).json()
        assert body["destination"] == {"type": "Hangup"}
        assert body["action"] == "reject"
