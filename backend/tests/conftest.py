"""
Shared fixtures for the matching engine tests.

Each test gets its own file-backed SQLite database (aiosqlite driver), so
concurrent sessions in one test use separate connections the way they would
against Postgres.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from lostfound.errors import DependencyError
from lostfound.extensions import create_session_factory, db
from lostfound.models import FoundItem, LostItem, User
from lostfound.modules.items.registry import ItemRegistry
from lostfound.modules.matches.service import MatchService


class RecordingNotificationEmitter:
    """Keeps every notification in memory for assertions."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def notify(self, user_id, event, title, message, metadata=None) -> None:
        self.sent.append(
            {"user_id": user_id, "event": event, "title": title, "message": message, "metadata": metadata}
        )

    def events_for(self, user_id: int) -> List[str]:
        return [n["event"] for n in self.sent if n["user_id"] == user_id]


class FailingNotificationEmitter:
    def __init__(self) -> None:
        self.attempts = 0

    async def notify(self, user_id, event, title, message, metadata=None) -> None:
        self.attempts += 1
        raise DependencyError("Notification delivery failed", {"userId": user_id})


class CrashingNotificationEmitter:
    """Raises something other than DependencyError, like a buggy transport would."""

    def __init__(self) -> None:
        self.attempts = 0

    async def notify(self, user_id, event, title, message, metadata=None) -> None:
        self.attempts += 1
        raise RuntimeError("transport exploded")


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    factory = create_session_factory(f"sqlite+aiosqlite:///{tmp_path}/matching.db")
    engine = factory.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(db.metadata.create_all)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def users(session_factory) -> Dict[str, User]:
    """owner reports lost items, finder reports found items, stranger is anyone else."""
    async with session_factory() as session:
        people = {
            "owner": User(email="owner@example.com", name="Owner"),
            "finder": User(email="finder@example.com", name="Finder"),
            "stranger": User(email="stranger@example.com", name="Stranger"),
        }
        session.add_all(people.values())
        await session.commit()
    return people


@pytest.fixture
def notifier() -> RecordingNotificationEmitter:
    return RecordingNotificationEmitter()


@pytest.fixture
def failing_notifier() -> FailingNotificationEmitter:
    return FailingNotificationEmitter()


@pytest.fixture
def crashing_notifier() -> CrashingNotificationEmitter:
    return CrashingNotificationEmitter()


@pytest.fixture
def service(session_factory, notifier) -> MatchService:
    return MatchService(session_factory, notifier, window_days=7)


@pytest.fixture
def add_lost(session_factory, users):
    async def _add(
        item_name: str = "blue backpack",
        category: str = "bags",
        lost_date: Optional[date] = date(2024, 1, 10),
        secret_identifier: str = "torn zipper tag",
        owner: str = "owner",
    ) -> LostItem:
        async with session_factory() as session:
            item = await ItemRegistry(session).add_lost_item(
                owner_id=users[owner].id,
                item_name=item_name,
                category=category,
                secret_identifier=secret_identifier,
                lost_date=lost_date,
            )
            await session.commit()
        return item

    return _add


@pytest.fixture
def add_found(session_factory, users):
    async def _add(
        item_name: str = "Blue Backpack",
        category: str = "bags",
        found_date: Optional[date] = date(2024, 1, 14),
        finder: Optional[str] = "finder",
    ) -> FoundItem:
        async with session_factory() as session:
            item = await ItemRegistry(session).add_found_item(
                finder_id=users[finder].id if finder else None,
                item_name=item_name,
                category=category,
                found_date=found_date,
            )
            await session.commit()
        return item

    return _add
