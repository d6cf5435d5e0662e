from datetime import timedelta

from app.core.security import create_access_token, decode_access_token
from tests.helpers import auth_headers


def register_payload(email: str = "Vega@Example.com") -> dict:
    return {
        "name": "Vega",
        "email": email,
        "password": "secret123",
        "bio": "amateur astronomer",
        "location": {"type": "Point", "coordinates": [27.56, 53.9]},
    }


async def test_register_login_and_me(client):
    resp = await client.post("/api/users/", json=register_payload())
    assert resp.status_code == 201
    user = resp.json()["data"]
    assert user["email"] == "vega@example.com"
    assert "hashed_password" not in user
    assert user["saved_event_ids"] == []

    resp = await client.post(
        "/api/auth/login",
        data={"username": "vega@example.com", "password": "secret123"},
    )
    assert resp.status_code == 200
    login = resp.json()["data"]
    assert login["token_type"] == "bearer"
    assert login["user"]["id"] == user["id"]

    resp = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {login['access_token']}"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "vega@example.com"


async def test_login_wrong_password(client, make_user):
    user = await make_user()

    resp = await client.post(
        "/api/auth/login", data={"username": user.email, "password": "wrong-one"}
    )

    assert resp.status_code == 400
    assert resp.json()["success"] is False


async def test_me_rejects_garbage_token(client):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


async def test_token_for_deleted_user(client, make_user):
    user = await make_user()
    headers = auth_headers(user)

    resp = await client.delete("/api/users/me", headers=headers)
    assert resp.status_code == 200

    resp = await client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 401


async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_expired_token_is_rejected(client, make_user):
    user = await make_user()
    token = create_access_token(user.id, user.email, expires_delta=timedelta(minutes=-1))

    assert decode_access_token(token) is None
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


async def test_token_after_email_change(client, make_user):
    user = await make_user()
    old_headers = auth_headers(user)

    resp = await client.patch(
        "/api/users/me", json={"email": "new-address@example.com"}, headers=old_headers
    )
    assert resp.status_code == 200

    resp = await client.get("/api/auth/me", headers=old_headers)
    assert resp.status_code == 401
