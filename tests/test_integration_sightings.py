"""Integration tests for sighting CRUD and ownership enforcement."""

import pytest
from conftest import signup_and_signin

PHOTO = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


@pytest.fixture
def alice(client):
    signup_and_signin(client, "alice@example.com")
    return client


@pytest.fixture
def bob(make_client):
    other = make_client()
    signup_and_signin(other, "bob@example.com")
    return other


def _create(client, **overrides):
    payload = {"animal_name": "Red Fox", "location": "Yellowstone"}
    payload.update(overrides)
    response = client.post("/api/sightings", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["sighting"]


def test_sighting_routes_require_session(client):
    assert client.get("/api/sightings").status_code == 401
    assert client.post("/api/sightings", json={"animal_name": "a", "location": "b"}).status_code == 401
    assert client.get("/api/sightings/" + "0" * 32).status_code == 401
    assert client.patch("/api/sightings/" + "0" * 32, json={"location": "x"}).status_code == 401
    assert client.delete("/api/sightings/" + "0" * 32).status_code == 401


def test_scenario_create_then_list_newest_first(alice):
    response = alice.post(
        "/api/sightings", json={"animal_name": "Red Fox", "location": "Yellowstone"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    sighting = body["sighting"]
    assert sighting["photo_url"] is None
    assert sighting["timestamp_sighted"] == sighting["created_at"]

    _create(alice, animal_name="Owl", location="Forest", photo_url=PHOTO)
    listing = alice.get("/api/sightings")
    assert listing.status_code == 200
    names = [s["animal_name"] for s in listing.json()["sightings"]]
    assert names == ["Owl", "Red Fox"]
    assert listing.json()["success"] is True


def test_list_only_shows_own_sightings(alice, bob):
    _create(alice)
    _create(bob, animal_name="Bear")
    assert [s["animal_name"] for s in bob.get("/api/sightings").json()["sightings"]] == ["Bear"]


def test_list_pagination(alice):
    for i in range(4):
        _create(alice, animal_name=f"Animal {i}")
    page = alice.get("/api/sightings", params={"limit": 2, "offset": 1}).json()["sightings"]
    assert [s["animal_name"] for s in page] == ["Animal 2", "Animal 1"]
    bad = alice.get("/api/sightings", params={"limit": 0})
    assert bad.status_code == 400
    assert "limit" in bad.json()["details"]
    assert alice.get("/api/sightings", params={"limit": 101}).status_code == 400
    assert alice.get("/api/sightings", params={"offset": -1}).status_code == 400


def test_get_own_sighting(alice):
    created = _create(alice, photo_url=PHOTO)
    response = alice.get(f"/api/sightings/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "sighting": created}


def test_scenario_cross_user_access_is_forbidden_and_leaves_resource_unchanged(alice, bob):
    created = _create(alice)
    url = f"/api/sightings/{created['id']}"
    get = bob.get(url)
    assert get.status_code == 403
    assert get.json() == {"error": "Not authorized to view this sighting"}
    assert bob.patch(url, json={"animal_name": "Wolf"}).status_code == 403
    assert bob.delete(url).status_code == 403
    assert alice.get(url).json()["sighting"] == created


def test_missing_sighting_is_404_for_everyone(alice, bob):
    created = _create(alice)
    url = f"/api/sightings/{created['id']}"
    assert alice.delete(url).status_code == 204
    for caller in (alice, bob):
        response = caller.get(url)
        assert response.status_code == 404
        assert response.json() == {"error": "Sighting not found"}
    assert alice.get("/api/sightings/" + "f" * 32).status_code == 404
    # a second delete finds nothing
    assert alice.delete(url).status_code == 404


def test_patch_updates_given_fields_and_removes_photo(alice):
    created = _create(alice, photo_url=PHOTO)
    url = f"/api/sightings/{created['id']}"
    response = alice.patch(url, json={"location": "  Lamar Valley "})
    assert response.status_code == 200
    updated = response.json()["sighting"]
    assert updated["location"] == "Lamar Valley"
    assert updated["animal_name"] == "Red Fox"
    assert updated["photo_url"] == PHOTO
    assert updated["updated_at"] >= created["updated_at"]

    cleared = alice.patch(url, json={"photo_url": None}).json()["sighting"]
    assert cleared["photo_url"] is None


def test_scenario_empty_patch_is_rejected(alice):
    created = _create(alice)
    response = alice.patch(f"/api/sightings/{created['id']}", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "No fields to update"}


def test_patch_rejects_unknown_fields(alice):
    created = _create(alice)
    response = alice.patch(
        f"/api/sightings/{created['id']}", json={"user_id": "someone", "location": "x"}
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"user_id": "Unknown field"}


def test_scenario_oversized_photo_names_photo_url(alice):
    photo = "data:image/png;base64," + "A" * 2_900_000
    response = alice.post(
        "/api/sightings", json={"animal_name": "Fox", "location": "Park", "photo_url": photo}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert list(body["details"]) == ["photo_url"]
    assert alice.get("/api/sightings").json()["sightings"] == []


def test_create_validation_reports_each_field(alice):
    response = alice.post(
        "/api/sightings", json={"animal_name": "", "photo_url": "data:image/gif;base64,AA"}
    )
    assert response.status_code == 400
    assert set(response.json()["details"]) == {"animal_name", "location", "photo_url"}


def test_malformed_json_is_validation_failure(alice):
    response = alice.post(
        "/api/sightings", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"body": "Invalid JSON"}


def test_malformed_json_without_session_is_401(client):
    headers = {"Content-Type": "application/json"}
    created = client.post("/api/sightings", content="{bad", headers=headers)
    assert created.status_code == 401
    assert created.json() == {"error": "Not authenticated"}
    patched = client.patch("/api/sightings/" + "0" * 32, content="{bad", headers=headers)
    assert patched.status_code == 401
