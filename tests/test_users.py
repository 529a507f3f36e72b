from __future__ import annotations

from conftest import ADMIN_EMAIL, bearer, login, register


def test_user_admin_requires_admin_role(client, user_token):
    resp = client.get("/api/users", headers=bearer(user_token))
    assert resp.status_code == 403
    assert resp.json()["message"] == "Administrator access required."


def test_user_admin_requires_token(client):
    assert client.get("/api/users").status_code == 401


def test_list_and_get_users(client, admin_token, user_token):
    headers = bearer(admin_token)

    users = client.get("/api/users", headers=headers).json()
    emails = [u["email"] for u in users]
    assert ADMIN_EMAIL in emails
    assert "regular.user@rigaku.com" in emails
    assert all("password" not in key.lower() or key == "requirePasswordChange" for u in users for key in u)

    regular = next(u for u in users if u["email"] == "regular.user@rigaku.com")
    one = client.get(f"/api/users/{regular['id']}", headers=headers)
    assert one.status_code == 200
    assert one.json()["isAdmin"] is False

    assert client.get("/api/users/9999", headers=headers).status_code == 404


def test_create_user(client, admin_token):
    headers = bearer(admin_token)
    body = {"email": "New.Hire@rigaku.com", "username": "New Hire", "password": "Welcome1", "isAdmin": True}

    resp = client.post("/api/users", json=body, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["email"] == "new.hire@rigaku.com"
    assert resp.json()["isAdmin"] is True

    assert login(client, "new.hire@rigaku.com", "Welcome1").json()["isAdmin"] is True

    duplicate = client.post("/api/users", json=body, headers=headers)
    assert duplicate.status_code == 400


def test_update_user(client, admin_token, user_token):
    headers = bearer(admin_token)
    users = client.get("/api/users", headers=headers).json()
    regular = next(u for u in users if u["email"] == "regular.user@rigaku.com")

    collision = client.put(f"/api/users/{regular['id']}", json={"email": ADMIN_EMAIL}, headers=headers)
    assert collision.status_code == 400
    assert collision.json()["message"] == "A user with this email already exists."

    resp = client.put(
        f"/api/users/{regular['id']}",
        json={"username": "Renamed User", "password": "Another1Pass", "isAdmin": True},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["username"] == "Renamed User"
    assert resp.json()["isAdmin"] is True

    assert login(client, "regular.user@rigaku.com", "Another1Pass").status_code == 200

    assert client.put("/api/users/9999", json={"username": "x"}, headers=headers).status_code == 404


def test_admin_cannot_delete_self(client, admin_token, token_service):
    admin_id = token_service.decode(admin_token).user_id

    resp = client.delete(f"/api/users/{admin_id}", headers=bearer(admin_token))
    assert resp.status_code == 400
    assert resp.json()["message"] == "You cannot delete your own account"


def test_admin_deletes_other_user(client, admin_token):
    headers = bearer(admin_token)
    register(client, "leaving.soon@rigaku.com")
    users = client.get("/api/users", headers=headers).json()
    leaving = next(u for u in users if u["email"] == "leaving.soon@rigaku.com")

    resp = client.delete(f"/api/users/{leaving['id']}", headers=headers)
    assert resp.status_code == 204
    assert login(client, "leaving.soon@rigaku.com").status_code == 401

    assert client.delete(f"/api/users/{leaving['id']}", headers=headers).status_code == 404


def test_update_user_treats_blank_fields_as_unchanged(client, admin_token, user_token):
    headers = bearer(admin_token)
    users = client.get("/api/users", headers=headers).json()
    regular = next(u for u in users if u["email"] == "regular.user@rigaku.com")

    resp = client.put(
        f"/api/users/{regular['id']}",
        json={"email": "", "username": "  ", "password": "", "isAdmin": False},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["email"] == "regular.user@rigaku.com"
    assert resp.json()["username"] == regular["username"]
    assert login(client, "regular.user@rigaku.com").status_code == 200
