"""Shared fixtures: a file-backed SQLite ladder per test and a controllable clock."""
from datetime import datetime, timedelta

import pytest

from config import LadderSettings
from database.models import Database
from systems.challenge_system import ChallengeSystem
from systems.player_locks import PlayerLocks
from systems.ranking_system import RankingSystem
from systems.user_system import UserSystem

# A Monday morning
START = datetime(2024, 1, 8, 10, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return LadderSettings()


@pytest.fixture
async def database(tmp_path):
    db = Database(str(tmp_path / "ladder_test.db"))
    await db.initialize()
    return db


@pytest.fixture
def ranking_system(database, settings, clock):
    return RankingSystem(database, settings, PlayerLocks(), clock=clock)


@pytest.fixture
def challenge_system(database, ranking_system, settings, clock):
    return ChallengeSystem(database, ranking_system, settings, clock=clock)


@pytest.fixture
def user_system(database, ranking_system, clock):
    return UserSystem(database, ranking_system, clock=clock)


@pytest.fixture
async def players(user_system):
    """Five players ranked 1..5, returned in rank order."""
    registered = []
    for index in range(1, 6):
        registered.append(await user_system.register_player(f"player{index}", discord_id=1000 + index))
    return registered


async def rank_of(database, player):
    return (await database.get_player(player["player_id"]))["rank"]
