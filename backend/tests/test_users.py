from sqlalchemy import func, select

from app.models import EventMembership, Post, Reminder, User
from tests.helpers import auth_headers


def register_payload(**extra) -> dict:
    payload = {
        "name": "Sirius",
        "email": "sirius@example.com",
        "password": "secret123",
        "bio": "night owl",
        "location": {"type": "Point", "coordinates": [30.3, 59.9]},
    }
    payload.update(extra)
    return payload


async def test_register_duplicate_email(client):
    first = await client.post("/api/users/", json=register_payload())
    second = await client.post(
        "/api/users/", json=register_payload(email="SIRIUS@example.com")
    )

    assert first.status_code == 201
    assert second.status_code == 409


async def test_register_validation(client):
    resp = await client.post(
        "/api/users/",
        json=register_payload(location={"type": "Point", "coordinates": [10, 95]}),
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    resp = await client.post("/api/users/", json=register_payload(password="123"))
    assert resp.status_code == 400


async def test_get_user_with_saved_events(client, make_user, make_event):
    author = await make_user()
    member = await make_user()
    first = await make_event(author, name="Lyrids")
    second = await make_event(author, name="Orionids")
    headers = auth_headers(member)
    await client.post(f"/api/cosmic-events/{second.id}/join", headers=headers)
    await client.post(f"/api/cosmic-events/{first.id}/join", headers=headers)

    resp = await client.get(f"/api/users/{member.id}")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["saved_event_ids"] == [second.id, first.id]
    assert [e["name"] for e in data["saved_events"]] == ["Orionids", "Lyrids"]
    assert data["location"] == {"type": "Point", "coordinates": [27.56, 53.9]}


async def test_get_missing_user(client):
    resp = await client.get("/api/users/31337")

    assert resp.status_code == 404


async def test_update_me(client, make_user):
    taken = await make_user()
    user = await make_user()
    headers = auth_headers(user)

    resp = await client.patch("/api/users/me", json={"email": taken.email}, headers=headers)
    assert resp.status_code == 409

    resp = await client.patch(
        "/api/users/me",
        json={"name": "Renamed", "location": {"type": "Point", "coordinates": [0, 0]}},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Renamed"
    assert resp.json()["data"]["location"]["coordinates"] == [0, 0]


async def test_delete_refused_while_owning_content(
    client, session_factory, make_user, make_event
):
    author = await make_user()
    await make_event(author)

    resp = await client.delete("/api/users/me", headers=auth_headers(author))

    assert resp.status_code == 409
    async with session_factory() as session:
        assert await session.get(User, author.id) is not None


async def test_delete_cleans_up_participation_and_reactions(
    client, session_factory, make_user, make_event, make_post
):
    author = await make_user()
    fan = await make_user()
    event = await make_event(author)
    post = await make_post(author, event)
    headers = auth_headers(fan)
    await client.post(f"/api/cosmic-events/{event.id}/join", headers=headers)
    await client.post(f"/api/posts/{post.id}/like", headers=headers)

    resp = await client.delete("/api/users/me", headers=headers)

    assert resp.status_code == 200
    async with session_factory() as session:
        assert await session.get(User, fan.id) is None
        assert await session.scalar(select(func.count()).select_from(EventMembership)) == 0
        assert await session.scalar(select(func.count()).select_from(Reminder)) == 0
        stored = await session.get(Post, post.id)
        assert stored.likes == []
        assert stored.likes_count == 0
