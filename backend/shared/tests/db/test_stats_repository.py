"""Tests for SqliteStatsRepository."""

import asyncio

import pytest

from shared.db.connection import Database
from shared.db.stats_repository import SqliteStatsRepository


@pytest.fixture
def repo():
    db = Database(":memory:")
    db.connect()
    yield SqliteStatsRepository(db)
    db.close()


class TestIncrementStats:
    async def test_first_increment_creates_row(self, repo: SqliteStatsRepository) -> None:
        await repo.increment_stats("alice", wins=1, points=10, display_name="Alice", avatar="a.png")

        stats = await repo.get_stats("alice")
        assert stats is not None
        assert (stats.wins, stats.losses, stats.points) == (1, 0, 10)
        assert stats.display_name == "Alice"
        assert stats.avatar == "a.png"

    async def test_increments_accumulate(self, repo: SqliteStatsRepository) -> None:
        await repo.increment_stats("alice", wins=1, points=10)
        await repo.increment_stats("alice", losses=1)
        await repo.increment_stats("alice", wins=1, points=10)

        stats = await repo.get_stats("alice")
        assert (stats.wins, stats.losses, stats.points) == (2, 1, 20)

    async def test_concurrent_increments_are_not_lost(self, repo: SqliteStatsRepository) -> None:
        await asyncio.gather(*(repo.increment_stats("alice", wins=1, points=10) for _ in range(20)))

        stats = await repo.get_stats("alice")
        assert stats.wins == 20
        assert stats.points == 200

    async def test_empty_display_name_keeps_stored_one(self, repo: SqliteStatsRepository) -> None:
        await repo.increment_stats("alice", wins=1, display_name="Alice")
        await repo.increment_stats("alice", losses=1)
        await repo.increment_stats("alice", losses=1, display_name="Alice II")

        stats = await repo.get_stats("alice")
        assert stats.display_name == "Alice II"

    async def test_unknown_user(self, repo: SqliteStatsRepository) -> None:
        assert await repo.get_stats("ghost") is None


class TestFindTopByPoints:
    async def test_ordering_and_tiebreaks(self, repo: SqliteStatsRepository) -> None:
        await repo.increment_stats("carol", wins=1, points=10)
        await repo.increment_stats("alice", wins=3, points=30)
        await repo.increment_stats("bob", wins=1, points=10)
        await repo.increment_stats("dave", wins=2, points=10)
        await repo.increment_stats("erin", losses=4)

        top = await repo.find_top_by_points()

        assert [s.user_id for s in top] == ["alice", "dave", "bob", "carol", "erin"]

    async def test_limit(self, repo: SqliteStatsRepository) -> None:
        for i in range(5):
            await repo.increment_stats(f"user{i}", wins=1, points=i)

        top = await repo.find_top_by_points(limit=2)

        assert [s.user_id for s in top] == ["user4", "user3"]

    async def test_empty(self, repo: SqliteStatsRepository) -> None:
        assert await repo.find_top_by_points() == []
