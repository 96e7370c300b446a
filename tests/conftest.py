import itertools
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swipematch.database import build_engine, create_schema, utcnow
from swipematch.models import Creator, Member

_counter = itertools.count()


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'swipematch.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def other_db(session_factory):
    """A second, independent session for concurrency tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_creator(session_factory):
    """Profiles are written through their own session and returned detached."""

    async def _make(**overrides) -> Creator:
        n = next(_counter)
        values = {
            "username": f"creator_{n}",
            "display_name": f"Creator {n}",
            "gender": "female",
            "orientation": "straight",
            "age": 27,
            "body_type": "athletic",
            "ethnicity": "mixed",
            "interests": ["music", "travel"],
            "is_active": True,
            "is_verified": True,
            "show_in_browse": True,
            "auto_connect_enabled": False,
            "last_active_at": utcnow() - timedelta(hours=2),
            "last_content_at": utcnow() - timedelta(days=20),
        }
        values.update(overrides)
        creator = Creator(**values)
        async with session_factory() as session:
            session.add(creator)
            await session.commit()
        return creator

    return _make


@pytest.fixture
def make_member(session_factory):
    async def _make(**overrides) -> Member:
        n = next(_counter)
        values = {
            "username": f"member_{n}",
            "gender": "male",
            "orientation": "straight",
            "age": 29,
            "interests": ["music", "gaming"],
        }
        values.update(overrides)
        member = Member(**values)
        async with session_factory() as session:
            session.add(member)
            await session.commit()
        return member

    return _make


class RecordingSignalSink:
    """Collects signals instead of logging them."""

    def __init__(self):
        self.likes = []
        self.established = []

    def like_received(self, connection, priority):
        self.likes.append((connection.id, priority))

    def connection_established(self, connection, instant):
        self.established.append((connection.id, instant))


@pytest.fixture
def signals():
    return RecordingSignalSink()
