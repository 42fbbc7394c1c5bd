# petqr/api/auth/test_routes.py
import pytest
from firebase_admin import auth as firebase_auth


@pytest.fixture
def firebase_token(app, monkeypatch):
    """Make AuthService accept 'valid-<uid>' as a Firebase ID token."""
    def verify(id_token):
        if not id_token.startswith("valid-"):
            raise ValueError("bad token")
        uid = id_token[len("valid-"):]
        return {"uid": uid, "email": f"{uid}@example.com"}

    monkeypatch.setattr(app.services['auth'], "verify_id_token", verify)
    monkeypatch.setattr(firebase_auth, "revoke_refresh_tokens", lambda uid: None)
    return lambda uid: f"valid-{uid}"


def test_login_issues_tokens_and_opens_session(client, make_user, firebase_token, app):
    make_user("u1", is_admin=True)
    response = client.post("/api/auth/login", json={"id_token": firebase_token("u1")})

    assert response.status_code == 200
    body = response.get_json()
    assert body["user_id"] == "u1"
    assert body["is_admin"] is True
    assert body["access_token"] and body["refresh_token"]

    session = app.services['sessions'].get("u1")
    assert session.signed_in and session.is_admin

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()["email"] == "u1@example.com"
    assert me.get_json()["signed_in"] is True


def test_login_without_profile_is_not_admin(client, firebase_token, db):
    body = client.post("/api/auth/login", json={"id_token": firebase_token("stranger")}).get_json()
    assert body["is_admin"] is False
    # profiles are created only through the admin console
    assert db.rows("profiles") == {}


def test_login_rejects_bad_tokens(client, firebase_token):
    assert client.post("/api/auth/login", json={"id_token": "forged"}).status_code == 401
    missing = client.post("/api/auth/login", json={})
    assert missing.status_code == 400
    assert missing.get_json()["error_code"] == "VALIDATION_ERROR"


def test_refresh(client, make_user, token_pair):
    _, refresh = token_pair(make_user())
    response = client.post("/api/auth/token/refresh", headers={"Authorization": f"Bearer {refresh}"})
    assert response.status_code == 200
    assert response.get_json()["access_token"]


def test_logout_revokes_tokens_and_clears_session(client, make_user, firebase_token, app, db):
    make_user("u1")
    tokens = client.post("/api/auth/login", json={"id_token": firebase_token("u1")}).get_json()

    response = client.post("/api/auth/logout", json={
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
    })
    assert response.status_code == 200
    assert len(db.rows("revoked_tokens")) == 2
    assert app.services['sessions'].get("u1") is None

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 401
    refresh = client.post("/api/auth/token/refresh", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert refresh.status_code == 401


def test_logout_rejects_garbage(client):
    response = client.post("/api/auth/logout", json={"access_token": "x", "refresh_token": "y"})
    assert response.status_code == 422
    assert client.post("/api/auth/logout", json={}).status_code == 400


def test_me_falls_back_to_profile(client, make_user, auth_headers):
    make_user("u2", is_admin=True)
    body = client.get("/api/auth/me", headers=auth_headers("u2")).get_json()
    assert body["user_id"] == "u2"
    assert body["is_admin"] is True
    assert body["signed_in"] is True
