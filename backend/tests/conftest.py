import itertools
import os
from datetime import datetime, timedelta

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REMINDER_SWEEP_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.security import hash_password
from app.db.base import Base
from app.db.session import get_session
from app.main import app
from app.models import CosmicEvent, CosmicEventType, Post, User
from app.utils.dates import utcnow


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    counter = itertools.count(1)

    async def factory(name: str | None = None, password: str = "secret123") -> User:
        n = next(counter)
        async with session_factory() as session:
            user = User(
                name=name or f"user{n}",
                email=f"{name or 'user'}{n}@example.com".lower(),
                hashed_password=hash_password(password),
                bio="stargazer",
                longitude=27.56,
                latitude=53.9,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return factory


@pytest.fixture
def make_event(session_factory):
    counter = itertools.count(1)

    async def factory(
        author: User,
        name: str | None = None,
        starts_at: datetime | None = None,
        duration: timedelta = timedelta(hours=3),
        event_type: CosmicEventType = CosmicEventType.meteor_shower,
        regions: list[str] | None = None,
    ) -> CosmicEvent:
        starts_at = starts_at or utcnow() + timedelta(days=2)
        async with session_factory() as session:
            event = CosmicEvent(
                name=name or f"Event {next(counter)}",
                type=event_type,
                starts_at=starts_at,
                ends_at=starts_at + duration,
                posted_user_id=author.id,
            )
            event.visibility_regions = regions or []
            session.add(event)
            await session.commit()
            await session.refresh(event)
            return event

    return factory


@pytest.fixture
def make_post(session_factory):
    async def factory(author: User, event: CosmicEvent) -> Post:
        async with session_factory() as session:
            post = Post(
                user_id=author.id,
                event_id=event.id,
                image_url="https://img.example.com/perseids.jpg",
                caption="Clear sky tonight",
                longitude=27.56,
                latitude=53.9,
                visibility_score=8,
                likes_count=0,
                dislikes_count=0,
            )
            session.add(post)
            await session.commit()
            await session.refresh(post)
            return post

    return factory
