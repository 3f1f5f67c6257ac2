# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")

from collections.abc import AsyncIterator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from triplinks.db.session import build_engine, get_db  # noqa: E402
from triplinks.models.base import Base  # noqa: E402
from triplinks.models.entity_link import EntityLink  # noqa: E402


def _get_test_database_url() -> str:
    """Return the test database URL from env, falling back to in-memory SQLite."""
    return os.environ.get(
        "TEST_DATABASE_URL",
        "sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an async engine for the test database."""
    engine = build_engine(_get_test_database_url(), echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(
    async_engine: AsyncEngine,
) -> AsyncIterator[AsyncSession]:
    """Provide a database session that rolls back after each test."""
    session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(1)}"}


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """HTTP client bound to the app, sharing the test session."""
    from triplinks.main import app

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory helpers for creating model instances in tests
# ---------------------------------------------------------------------------


def make_link(
    *,
    trip_id: int = 1,
    source_type: str = "LOCATION",
    source_id: int = 1,
    target_type: str = "ACTIVITY",
    target_id: int = 1,
    relationship: str = "RELATED",
    sort_order: int | None = None,
    notes: str | None = None,
) -> dict[str, object]:
    """Return kwargs suitable for constructing an EntityLink model instance."""
    return {
        "trip_id": trip_id,
        "source_type": source_type,
        "source_id": source_id,
        "target_type": target_type,
        "target_id": target_id,
        "relationship": relationship,
        "sort_order": sort_order,
        "notes": notes,
    }


def make_location(*, trip_id: int = 1, name: str = "Test Location") -> dict[str, object]:
    """Return kwargs suitable for constructing a Location model instance."""
    return {"trip_id": trip_id, "name": name}


def make_activity(*, trip_id: int = 1, name: str = "Test Activity") -> dict[str, object]:
    """Return kwargs suitable for constructing an Activity model instance."""
    return {"trip_id": trip_id, "name": name}


def make_lodging(*, trip_id: int = 1, name: str = "Test Lodging") -> dict[str, object]:
    """Return kwargs suitable for constructing a Lodging model instance."""
    return {"trip_id": trip_id, "name": name}


def make_transportation(
    *,
    trip_id: int = 1,
    type: str = "flight",
    company: str | None = "Test Air",
) -> dict[str, object]:
    """Return kwargs suitable for constructing a Transportation model instance."""
    return {"trip_id": trip_id, "type": type, "company": company}


def make_photo(
    *,
    trip_id: int = 1,
    caption: str | None = "Test photo",
    thumbnail_path: str | None = "thumbs/test.jpg",
) -> dict[str, object]:
    """Return kwargs suitable for constructing a Photo model instance."""
    return {
        "trip_id": trip_id,
        "caption": caption,
        "thumbnail_path": thumbnail_path,
        "file_path": "photos/test.jpg",
        "taken_at": datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc),
    }


def make_photo_album(*, trip_id: int = 1, name: str = "Test Album") -> dict[str, object]:
    """Return kwargs suitable for constructing a PhotoAlbum model instance."""
    return {"trip_id": trip_id, "name": name}


def make_journal_entry(
    *,
    trip_id: int = 1,
    title: str | None = "Day one",
) -> dict[str, object]:
    """Return kwargs suitable for constructing a JournalEntry model instance."""
    return {
        "trip_id": trip_id,
        "title": title,
        "date": datetime(2026, 5, 1, tzinfo=timezone.utc),
    }


def make_token(
    user_id: int = 1,
    *,
    secret: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Mint an HS256 bearer token the way the upstream auth service does."""
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, secret or os.environ["JWT_SECRET_KEY"], algorithm="HS256")


async def count_links(session: AsyncSession, trip_id: int) -> int:
    """Return how many links are stored for ``trip_id``."""
    result = await session.execute(
        select(func.count()).select_from(EntityLink).where(EntityLink.trip_id == trip_id)
    )
    return result.scalar_one()
