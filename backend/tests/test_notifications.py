from datetime import timedelta

from app.services.reminders import sweep_due_reminders
from app.utils.dates import utcnow
from tests.helpers import auth_headers


async def noop_dispatcher(notice) -> None:
    return None


async def test_list_my_notifications(client, session_factory, make_user, make_event):
    author = await make_user()
    member = await make_user()
    now = utcnow()
    soon = await make_event(author, name="Soon", starts_at=now + timedelta(minutes=30))
    later = await make_event(author, name="Later", starts_at=now + timedelta(days=2))
    headers = auth_headers(member)
    await client.post(f"/api/cosmic-events/{later.id}/join", headers=headers)
    await client.post(f"/api/cosmic-events/{soon.id}/join", headers=headers)

    resp = await client.get("/api/notifications/", headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert [r["event"]["name"] for r in body["data"]] == ["Soon", "Later"]

    result = await sweep_due_reminders(session_factory, noop_dispatcher)
    assert result.delivered == 1

    resp = await client.get("/api/notifications/", params={"notified": "true"}, headers=headers)
    assert [r["event_id"] for r in resp.json()["data"]] == [soon.id]

    resp = await client.get("/api/notifications/", params={"notified": "false"}, headers=headers)
    assert [r["event_id"] for r in resp.json()["data"]] == [later.id]


async def test_notifications_are_private(client, make_user, make_event):
    author = await make_user()
    member = await make_user()
    event = await make_event(author)
    await client.post(f"/api/cosmic-events/{event.id}/join", headers=auth_headers(member))

    resp = await client.get("/api/notifications/", headers=auth_headers(author))
    assert resp.json()["count"] == 0

    resp = await client.get(f"/api/notifications/{event.id}", headers=auth_headers(author))
    assert resp.json()["data"] == []

    resp = await client.get(f"/api/notifications/{event.id}", headers=auth_headers(member))
    assert len(resp.json()["data"]) == 1


async def test_event_notifications_missing_event(client, make_user):
    user = await make_user()

    resp = await client.get("/api/notifications/999", headers=auth_headers(user))

    assert resp.status_code == 404


async def test_notifications_require_auth(client):
    resp = await client.get("/api/notifications/")

    assert resp.status_code == 401
