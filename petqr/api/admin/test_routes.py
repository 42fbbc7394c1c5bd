# petqr/api/admin/test_routes.py
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from firebase_admin import auth as firebase_auth

from petqr.core.session import AuthEvent, AuthEventType


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user("admin", is_admin=True))


def _set_created_at(db, pet, day):
    db.rows("pets")[pet.id]["created_at"] = datetime(2024, 1, day, tzinfo=timezone.utc)


def test_console_requires_admin(client, make_user, auth_headers):
    assert client.get("/api/admin/pets").status_code == 401

    response = client.get("/api/admin/pets", headers=auth_headers(make_user("plain")))
    assert response.status_code == 403
    body = response.get_json()
    assert body["error_code"] == "FORBIDDEN"
    assert body["redirect"] == "/"

    no_profile = client.get("/api/admin/users", headers=auth_headers("ghost"))
    assert no_profile.status_code == 403


def test_revoked_admin_loses_access_immediately(client, make_user, auth_headers, db):
    headers = auth_headers(make_user("admin", is_admin=True))
    assert client.get("/api/admin/pets", headers=headers).status_code == 200

    db.rows("profiles")["admin"]["is_admin"] = False
    assert client.get("/api/admin/pets", headers=headers).status_code == 403


def test_list_pets_newest_first_with_search(client, admin_headers, make_pet, db):
    older = make_pet(pet_name="Bolt", owner_name="Ana Souza", phone="(21) 3333-4444")
    newer = make_pet(pet_name="Rex", owner_name="João", phone="(11) 99999-9999")
    _set_created_at(db, older, 1)
    _set_created_at(db, newer, 2)

    body = client.get("/api/admin/pets", headers=admin_headers).get_json()
    assert body["count"] == 2
    assert [p["pet_name"] for p in body["pets"]] == ["Rex", "Bolt"]

    by_owner = client.get("/api/admin/pets?q=souza", headers=admin_headers).get_json()
    assert [p["pet_name"] for p in by_owner["pets"]] == ["Bolt"]

    by_phone = client.get("/api/admin/pets?q=99999", headers=admin_headers).get_json()
    assert [p["pet_name"] for p in by_phone["pets"]] == ["Rex"]

    by_name = client.get("/api/admin/pets?q=REX", headers=admin_headers).get_json()
    assert by_name["count"] == 1


def test_list_pets_skips_malformed_rows(client, admin_headers, make_pet, db):
    make_pet()
    db.collection("pets").document("broken").set({"id": "broken", "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)})
    body = client.get("/api/admin/pets", headers=admin_headers).get_json()
    assert body["count"] == 1


def test_create_and_update_pet(client, admin_headers, pet_form):
    created = client.post("/api/admin/pets", json=pet_form, headers=admin_headers)
    assert created.status_code == 201
    qr_id = created.get_json()["qr_id"]

    updated = client.put(f"/api/admin/pets/{qr_id}", json={**pet_form, "reward": "0"}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.get_json()["reward"] == "0.00"
    assert updated.get_json()["qr_id"] == qr_id

    invalid = client.post("/api/admin/pets", json={"pet_name": "Rex"}, headers=admin_headers)
    assert invalid.status_code == 400

    missing = client.put("/api/admin/pets/nope", json=pet_form, headers=admin_headers)
    assert missing.status_code == 404


def test_delete_requires_confirmation(client, admin_headers, make_pet, app, db):
    pet = make_pet()
    app.services['pet_info'].report_location(pet.qr_id, 1.0, 2.0)
    assert len(db.rows(f"pets/{pet.id}/locations")) == 1

    no_body = client.delete(f"/api/admin/pets/{pet.qr_id}", headers=admin_headers)
    assert no_body.status_code == 400
    assert no_body.get_json()["error_code"] == "CONFIRMATION_REQUIRED"

    mismatch = client.delete(f"/api/admin/pets/{pet.qr_id}", json={"confirm": "other"}, headers=admin_headers)
    assert mismatch.status_code == 400
    assert pet.id in db.rows("pets")

    confirmed = client.delete(f"/api/admin/pets/{pet.qr_id}", json={"confirm": pet.qr_id}, headers=admin_headers)
    assert confirmed.status_code == 204
    assert pet.id not in db.rows("pets")
    assert db.rows(f"pets/{pet.id}/locations") == {}

    gone = client.delete(f"/api/admin/pets/{pet.qr_id}", json={"confirm": pet.qr_id}, headers=admin_headers)
    assert gone.status_code == 404


def test_list_users_newest_first(client, make_user, auth_headers):
    make_user("admin", is_admin=True, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    make_user("newcomer", created_at=datetime(2024, 3, 1, tzinfo=timezone.utc))

    body = client.get("/api/admin/users", headers=auth_headers("admin")).get_json()
    assert [u["user_id"] for u in body["users"]] == ["newcomer", "admin"]


def test_toggle_admin_twice_restores_original(client, make_user, admin_headers, app):
    target = make_user("target")
    app.services['sessions'].handle_auth_event(AuthEvent(AuthEventType.SIGNED_IN, target, email="target@example.com"))

    first = client.post(f"/api/admin/users/{target}/toggle-admin", headers=admin_headers)
    assert first.status_code == 200
    assert first.get_json()["is_admin"] is True
    assert app.services['sessions'].get(target).is_admin is True

    second = client.post(f"/api/admin/users/{target}/toggle-admin", headers=admin_headers)
    assert second.get_json()["is_admin"] is False
    assert app.services['profiles'].get_profile(target).is_admin is False
    assert app.services['sessions'].get(target).is_admin is False


def test_toggle_admin_unknown_user(client, admin_headers):
    response = client.post("/api/admin/users/nobody/toggle-admin", headers=admin_headers)
    assert response.status_code == 404


def test_create_user(client, admin_headers, monkeypatch, app):
    calls = {}

    def fake_create_user(**kwargs):
        calls.update(kwargs)
        return SimpleNamespace(uid="new-uid")

    monkeypatch.setattr(firebase_auth, "create_user", fake_create_user)
    response = client.post("/api/admin/users", json={"email": "novo@example.com"}, headers=admin_headers)

    assert response.status_code == 201
    body = response.get_json()
    assert body["user_id"] == "new-uid"
    assert body["is_admin"] is False
    assert calls["email"] == "novo@example.com"
    assert calls["email_verified"] is True
    assert app.services['profiles'].get_profile("new-uid").email == "novo@example.com"


def test_create_user_conflicts_and_validation(client, admin_headers, monkeypatch):
    def already_exists(**kwargs):
        raise firebase_auth.EmailAlreadyExistsError("exists", None, None)

    monkeypatch.setattr(firebase_auth, "create_user", already_exists)
    conflict = client.post("/api/admin/users", json={"email": "dup@example.com"}, headers=admin_headers)
    assert conflict.status_code == 409

    invalid = client.post("/api/admin/users", json={"email": "not-an-email"}, headers=admin_headers)
    assert invalid.status_code == 400
