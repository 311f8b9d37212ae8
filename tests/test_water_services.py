from datetime import datetime, timedelta

import pytest

SERVICE = {"name": "Plant1", "location": {"lat": 10, "lng": 10}, "type": "distribution", "capacity": 100}


def test_list_is_public(client, create_service):
    create_service(name="Zeta")
    create_service(name="Alpha", lat=11)
    resp = client.get("/api/water-services")
    assert resp.status_code == 200
    assert [s["name"] for s in resp.json()] == ["Alpha", "Zeta"]


def test_create_requires_admin(client, citizen):
    assert client.post("/api/water-services", json=SERVICE).status_code == 401

    resp = client.post("/api/water-services", json=SERVICE, headers=citizen["headers"])
    assert resp.status_code == 403
    assert resp.json() == {"message": "Administrator access required"}


def test_create_sets_defaults_and_derived_fields(create_service):
    service = create_service()
    assert service["status"] == "operational"
    assert service["currentUsage"] == 0
    assert service["usagePercentage"] == 0
    assert service["needsMaintenance"] is True
    assert service["maintenanceHistory"] == []
    assert service["issues"] == []


@pytest.mark.parametrize("field, value", [
    ("type", "reservoir"),
    ("capacity", -1),
    ("location", {"lat": 95, "lng": 0}),
])
def test_create_validation(client, admin, field, value):
    resp = client.post("/api/water-services", json={**SERVICE, field: value}, headers=admin["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"].startswith(field)


def test_get_unknown_service(client):
    resp = client.get("/api/water-services/nope")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Water service not found"}


def test_update_and_delete(client, admin, create_service):
    service = create_service()
    resp = client.put(
        f"/api/water-services/{service['id']}",
        json={**SERVICE, "name": "Plant One", "capacity": 250},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Plant One"
    assert resp.json()["capacity"] == 250

    resp = client.delete(f"/api/water-services/{service['id']}", headers=admin["headers"])
    assert resp.json() == {"message": "Water service deleted successfully"}
    assert client.get(f"/api/water-services/{service['id']}").status_code == 404
    assert client.delete(f"/api/water-services/{service['id']}", headers=admin["headers"]).status_code == 404


def test_status_read_and_update(client, admin, create_service):
    service = create_service(capacity=200)
    resp = client.patch(
        f"/api/water-services/{service['id']}/status",
        json={"status": "maintenance", "currentUsage": 300},
        headers=admin["headers"],
    )
    assert resp.status_code == 200

    status = client.get(f"/api/water-services/{service['id']}/status").json()
    assert status["status"] == "maintenance"
    assert status["currentUsage"] == 300
    assert status["capacity"] == 200
    assert status["usagePercentage"] == 150


def test_status_update_rejects_unknown_status(client, admin, create_service):
    service = create_service()
    resp = client.patch(
        f"/api/water-services/{service['id']}/status",
        json={"status": "broken"},
        headers=admin["headers"],
    )
    assert resp.status_code == 400


def test_log_maintenance(client, admin, create_service):
    service = create_service()
    resp = client.post(
        f"/api/water-services/{service['id']}/maintenance",
        json={"description": "Valve replaced"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["needsMaintenance"] is False
    assert body["maintenanceHistory"][0]["description"] == "Valve replaced"
    assert body["maintenanceHistory"][0]["performedBy"] == admin["id"]

    last = datetime.fromisoformat(body["lastMaintenance"].replace("Z", "+00:00"))
    nxt = datetime.fromisoformat(body["nextMaintenance"].replace("Z", "+00:00"))
    assert nxt - last == timedelta(days=30)


def test_old_maintenance_needs_maintenance_again(client, admin, create_service):
    service = create_service()
    resp = client.post(
        f"/api/water-services/{service['id']}/maintenance",
        json={"description": "Inspection", "date": "2020-01-01T00:00:00Z"},
        headers=admin["headers"],
    )
    assert resp.json()["needsMaintenance"] is True


def test_nearby_orders_by_distance(client, create_service):
    far = create_service(name="Far", lat=10.03, lng=10.0)
    near = create_service(name="Near", lat=10.001, lng=10.0)
    create_service(name="Out of range", lat=10.5, lng=10.0)

    resp = client.get("/api/water-services/nearby", params={"lat": 10.0, "lng": 10.0, "radius": 5000})
    assert resp.status_code == 200
    results = resp.json()
    assert [s["id"] for s in results] == [near["id"], far["id"]]
    assert results[0]["distanceMeters"] < results[1]["distanceMeters"] <= 5000


def test_nearby_requires_coordinates(client):
    assert client.get("/api/water-services/nearby", params={"lat": 10}).status_code == 400
