import random

import pytest

from connect4.logic.settings import MatchSettings
from connect4.messaging.router import MessageRouter
from connect4.server.app import create_app
from connect4.server.settings import ArenaServerSettings
from connect4.session.broadcast import ConnectionHub
from connect4.session.coordinator import MatchCoordinator
from connect4.session.presence import PresenceTracker
from shared.db import Database, SqliteMatchRepository, SqliteStatsRepository


@pytest.fixture
def match_settings():
    return MatchSettings(bot_think_seconds=0, inactivity_timeout_seconds=60)


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def db():
    database = Database(":memory:")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def match_repository(db):
    return SqliteMatchRepository(db)


@pytest.fixture
def stats_repository(db):
    return SqliteStatsRepository(db)


@pytest.fixture
async def coordinator(hub, match_repository, stats_repository, match_settings):
    coordinator = MatchCoordinator(
        hub,
        match_repository=match_repository,
        stats_repository=stats_repository,
        settings=match_settings,
        rng=random.Random(7),
    )
    yield coordinator
    coordinator.shutdown()


@pytest.fixture
def presence():
    return PresenceTracker(active_threshold_seconds=300)


@pytest.fixture
def message_router(coordinator, hub, presence):
    return MessageRouter(coordinator, hub, presence)


@pytest.fixture
def server_settings():
    return ArenaServerSettings(database_path=":memory:", bot_think_seconds=0, telemetry_interval_seconds=60)


@pytest.fixture
def app(server_settings):
    return create_app(settings=server_settings)
