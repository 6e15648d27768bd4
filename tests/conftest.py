import random
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from corplegends.models import failure as failure_module
from corplegends.models.card import Card, Department, Rarity
from corplegends.models.db import Base
from corplegends.services.album_store import AlbumStore


@pytest.fixture(autouse=True)
def clear_finalized_responses():
    """Clear the finalized responses set between tests.

    This prevents test isolation issues where Python reuses memory
    addresses for new objects, causing id() collisions with previously
    finalized responses.
    """
    failure_module._finalized_responses.clear()
    yield
    failure_module._finalized_responses.clear()


class ScriptedRandom(random.Random):
    """
    Random source that picks cards by id from a script.

    `choice` over cards returns the next scripted id; anything else
    (sample, choice over non-cards, exhausted script) uses the seeded
    generator.
    """

    def __init__(self, card_ids: Sequence[int] = (), seed: int = 0) -> None:
        super().__init__(seed)
        self._script = list(card_ids)

    def choice(self, seq: Sequence[Any]) -> Any:
        if self._script and seq and isinstance(seq[0], Card):
            wanted = self._script.pop(0)
            for item in seq:
                if item.id == wanted:
                    return item
            raise AssertionError(f"Scripted card {wanted} is not in the sequence")
        return super().choice(seq)


@pytest.fixture
def scripted_rng() -> Callable[..., ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def build_roster(
    size: int,
    legendary_ids: Sequence[int] = (),
    departments: Sequence[Department] = (Department.SALES, Department.MARKETING),
) -> list[Card]:
    return [
        Card(
            id=card_id,
            name=f"Employee {card_id}",
            role="Analyst",
            department=departments[(card_id - 1) % len(departments)],
            rarity=Rarity.LEGENDARY if card_id in legendary_ids else Rarity.COMMON,
            power=card_id % 99 + 1,
        )
        for card_id in range(1, size + 1)
    ]


@pytest.fixture
def make_roster() -> Callable[..., list[Card]]:
    """Factory for small rosters: ids 1..size, departments cycled."""
    return build_roster


@pytest.fixture
def roster() -> list[Card]:
    """Ten cards, one Legendary at id 5, split between Sales and Marketing."""
    return build_roster(10, legendary_ids=(5,))


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> AlbumStore:
    """Album store backed by the in-memory database."""
    return AlbumStore(session_factory)
