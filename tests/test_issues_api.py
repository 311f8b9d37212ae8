import pytest

from hydrowatch.core.settings import settings
from hydrowatch.services.water_service_registry import get_water_service_registry


def test_issues_require_authentication(client):
    assert client.get("/api/issues").status_code == 401
    assert client.post("/api/issues", json={}).status_code == 401


def test_nearest_service_attached(client, citizen, create_service, create_issue):
    plant = create_service(name="Plant1", lat=10, lng=10, type="distribution", capacity=100)
    issue = create_issue(lat=10.001, lng=10.001)

    assert issue["waterService"]["id"] == plant["id"]
    assert issue["waterService"]["name"] == "Plant1"
    assert issue["status"] == "reported"
    assert issue["comments"] == []
    assert issue["resolution"] is None
    assert issue["reportedBy"]["id"] == citizen["id"]
    assert len(issue["statusHistory"]) == 1

    linked = get_water_service_registry().get_service(plant["id"])
    assert linked["issues"] == [issue["id"]]


def test_closest_of_several_services_wins(create_service, create_issue):
    create_service(name="Farther", lat=10.02, lng=10.0)
    closer = create_service(name="Closer", lat=10.005, lng=10.0)
    issue = create_issue(lat=10.0, lng=10.0)
    assert issue["waterService"]["id"] == closer["id"]


def test_no_service_in_range(create_service, create_issue):
    create_service(name="Distant", lat=11.0, lng=11.0)
    issue = create_issue(lat=10.0, lng=10.0)
    assert issue["waterService"] is None


def test_reporter_comes_from_token(citizen, create_issue):
    issue = create_issue(reportedBy="someone-else")
    assert issue["reportedBy"]["id"] == citizen["id"]


def test_create_accepts_latitude_longitude_and_type_alias(client, citizen):
    resp = client.post(
        "/api/issues",
        json={
            "title": "Brown water",
            "description": "Discoloured since Monday",
            "type": "water_quality",
            "location": {"latitude": 5.0, "longitude": 6.0},
        },
        headers=citizen["headers"],
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["category"] == "water_quality"
    assert body["priority"] == "medium"
    assert body["location"] == {"lat": 5.0, "lng": 6.0}


def test_create_validation_lists_every_field(client, citizen):
    resp = client.post(
        "/api/issues",
        json={"title": " ", "description": "", "category": "flood", "priority": "asap", "location": {"lat": 200}},
        headers=citizen["headers"],
    )
    assert resp.status_code == 400
    fields = {err["field"] for err in resp.json()["errors"]}
    assert {"title", "description", "category", "priority"} <= fields
    assert any(f.startswith("location") for f in fields)


def test_get_issue_and_not_found(client, citizen, create_issue):
    issue = create_issue()
    resp = client.get(f"/api/issues/{issue['id']}", headers=citizen["headers"])
    assert resp.status_code == 200
    assert resp.json()["title"] == "Burst main"

    missing = client.get("/api/issues/does-not-exist", headers=citizen["headers"])
    assert missing.status_code == 404
    assert missing.json() == {"message": "Issue not found"}


def test_list_newest_first_and_filters(client, citizen, create_issue):
    first = create_issue(title="First", priority="low", category="pressure")
    second = create_issue(title="Second", priority="urgent", category="leak")

    listed = client.get("/api/issues", headers=citizen["headers"]).json()
    assert [i["id"] for i in listed] == [second["id"], first["id"]]

    by_priority = client.get("/api/issues/priority/low", headers=citizen["headers"]).json()
    assert [i["id"] for i in by_priority] == [first["id"]]

    by_category = client.get("/api/issues/category/leak", headers=citizen["headers"]).json()
    assert [i["id"] for i in by_category] == [second["id"]]

    by_status = client.get("/api/issues/status/reported", headers=citizen["headers"]).json()
    assert len(by_status) == 2
    assert client.get("/api/issues/status/closed", headers=citizen["headers"]).json() == []


def test_filter_rejects_unknown_value(client, citizen):
    assert client.get("/api/issues/status/lost", headers=citizen["headers"]).status_code == 400


def test_resolve_with_description(client, admin, create_issue):
    issue = create_issue()
    resp = client.patch(
        f"/api/issues/{issue['id']}/status",
        json={"status": "resolved", "resolutionDescription": "fixed"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    resolution = resp.json()["resolution"]
    assert resolution["description"] == "fixed"
    assert resolution["resolvedAt"]
    assert resolution["resolvedBy"]["id"] == admin["id"]


def test_resolution_description_ignored_for_other_status(client, admin, create_issue):
    issue = create_issue()
    resp = client.patch(
        f"/api/issues/{issue['id']}/status",
        json={"status": "in_progress", "resolutionDescription": "fixed"},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "in_progress"
    assert resp.json()["resolution"] is None


def test_status_update_unknown_issue(client, admin):
    resp = client.patch("/api/issues/nope/status", json={"status": "closed"}, headers=admin["headers"])
    assert resp.status_code == 404


def test_assign_overrides_resolved(client, admin, register_user, create_issue):
    tech = register_user(name="Tech", email="tech@example.com")
    issue = create_issue()
    client.patch(f"/api/issues/{issue['id']}/status", json={"status": "resolved"}, headers=admin["headers"])

    resp = client.patch(
        f"/api/issues/{issue['id']}/assign",
        json={"assignedTo": tech["id"]},
        headers=admin["headers"],
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "assigned"
    assert body["assignedTo"]["id"] == tech["id"]
    assert [h["toStatus"] for h in body["statusHistory"]] == ["reported", "resolved", "assigned"]


def test_assign_unknown_user(client, admin, create_issue):
    issue = create_issue()
    resp = client.patch(f"/api/issues/{issue['id']}/assign", json={"assignedTo": "ghost"}, headers=admin["headers"])
    assert resp.status_code == 404
    assert resp.json() == {"message": "User not found"}


def test_comments(client, citizen, create_issue):
    issue = create_issue()
    resp = client.post(f"/api/issues/{issue['id']}/comments", json={"text": "Still leaking"}, headers=citizen["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "reported"
    assert body["comments"][0]["text"] == "Still leaking"
    assert body["comments"][0]["author"]["id"] == citizen["id"]

    blank = client.post(f"/api/issues/{issue['id']}/comments", json={"text": "   "}, headers=citizen["headers"])
    assert blank.status_code == 400
    too_long = client.post(f"/api/issues/{issue['id']}/comments", json={"text": "x" * 1001}, headers=citizen["headers"])
    assert too_long.status_code == 400


def test_strict_transitions(client, admin, create_issue, monkeypatch):
    monkeypatch.setattr(settings, "ISSUE_STRICT_TRANSITIONS", True)
    issue = create_issue()

    resp = client.patch(f"/api/issues/{issue['id']}/status", json={"status": "resolved"}, headers=admin["headers"])
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "status"

    ok = client.patch(f"/api/issues/{issue['id']}/status", json={"status": "assigned"}, headers=admin["headers"])
    assert ok.status_code == 200


@pytest.mark.parametrize("fields", [
    {"lat": "10.001", "lng": "10.001"},
    {"location.latitude": "10.001", "location.longitude": "10.001"},
    {"location": '{"lat": 10.001, "lng": 10.001}'},
])
def test_multipart_create(client, citizen, create_service, fields):
    plant = create_service()
    data = {"title": "Leak", "description": "Hydrant dripping", "category": "leak", **fields}
    resp = client.post("/api/issues", data=data, headers=citizen["headers"])
    assert resp.status_code == 201, resp.text
    assert resp.json()["waterService"]["id"] == plant["id"]
