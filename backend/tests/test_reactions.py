import pytest

from app.models import Post
from tests.helpers import auth_headers


async def assert_counters_match(session_factory, post_id: int) -> Post:
    async with session_factory() as session:
        post = await session.get(Post, post_id)
        assert post.likes_count == len(post.likes)
        assert post.dislikes_count == len(post.dislikes)
        assert not set(post.likes) & set(post.dislikes)
        return post


async def test_like_then_dislike_switches_reaction(
    client, session_factory, make_user, make_event, make_post
):
    author = await make_user()
    fan = await make_user()
    post = await make_post(author, await make_event(author))
    headers = auth_headers(fan)

    resp = await client.post(f"/api/posts/{post.id}/like", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "post_id": post.id,
        "liked": True,
        "disliked": False,
        "likes_count": 1,
        "dislikes_count": 0,
    }

    resp = await client.post(f"/api/posts/{post.id}/dislike", headers=headers)
    assert resp.json()["data"]["liked"] is False
    assert resp.json()["data"]["disliked"] is True
    assert resp.json()["data"]["likes_count"] == 0
    assert resp.json()["data"]["dislikes_count"] == 1

    stored = await assert_counters_match(session_factory, post.id)
    assert stored.dislikes == [fan.id]
    assert stored.likes == []


async def test_repeated_like_removes_it(client, session_factory, make_user, make_event, make_post):
    author = await make_user()
    post = await make_post(author, await make_event(author))
    headers = auth_headers(author)

    await client.post(f"/api/posts/{post.id}/like", headers=headers)
    resp = await client.post(f"/api/posts/{post.id}/like", headers=headers)

    assert resp.json()["message"] == "Лайк снят"
    assert resp.json()["data"]["likes_count"] == 0
    await assert_counters_match(session_factory, post.id)


@pytest.mark.parametrize(
    "sequence",
    [
        ["like", "dislike", "dislike", "like", "like"],
        ["dislike", "like", "dislike", "dislike"],
    ],
)
async def test_toggle_sequences_keep_counters_in_sync(
    client, session_factory, make_user, make_event, make_post, sequence
):
    author = await make_user()
    others = [await make_user() for _ in range(2)]
    post = await make_post(author, await make_event(author))

    # фон: один лайк и один дизлайк от других пользователей
    await client.post(f"/api/posts/{post.id}/like", headers=auth_headers(others[0]))
    await client.post(f"/api/posts/{post.id}/dislike", headers=auth_headers(others[1]))

    for action in sequence:
        resp = await client.post(f"/api/posts/{post.id}/{action}", headers=auth_headers(author))
        assert resp.status_code == 200
        await assert_counters_match(session_factory, post.id)


async def test_toggle_on_missing_post(client, make_user):
    user = await make_user()

    resp = await client.post("/api/posts/777/like", headers=auth_headers(user))

    assert resp.status_code == 404
