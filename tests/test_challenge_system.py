"""Tests for systems.challenge_system: the challenge lifecycle against a real SQLite store."""
import asyncio
import sqlite3
from datetime import datetime

import pytest

from config import LadderSettings
from systems.challenge_system import ChallengeSystem
from systems.ranking_system import RankingSystem
from utils.exceptions import (
    BusinessRuleViolation, InvalidScore, InvalidState, NotFound, PersistenceError, Unauthorized,
)
from tests.conftest import START, rank_of


def build_system(database, clock, **overrides):
    settings = LadderSettings(**overrides)
    ranking = RankingSystem(database, settings, clock=clock)
    return ChallengeSystem(database, ranking, settings, clock=clock)


def ids(*players):
    return [player["player_id"] for player in players]


class TestCreateChallenge:
    async def test_creates_pending_challenge(self, challenge_system, players):
        challenger, challengee = players[2], players[1]

        challenge = await challenge_system.create_challenge(*ids(challenger, challengee))

        assert challenge["status"] == "pending"
        assert challenge["challenger_id"] == challenger["player_id"]
        assert challenge["challengee_id"] == challengee["player_id"]
        assert challenge["challenger_score"] is None
        assert challenge["created_at"] == START.isoformat()
        assert challenge["updated_at"] == challenge["created_at"]

    async def test_unknown_player(self, challenge_system, players):
        with pytest.raises(NotFound):
            await challenge_system.create_challenge(999, players[0]["player_id"])
        with pytest.raises(NotFound):
            await challenge_system.create_challenge(players[1]["player_id"], 999)

    async def test_self_challenge(self, challenge_system, players):
        with pytest.raises(BusinessRuleViolation, match="cannot challenge themselves"):
            await challenge_system.create_challenge(*ids(players[1], players[1]))

    async def test_cannot_challenge_downward(self, challenge_system, players):
        with pytest.raises(BusinessRuleViolation, match="below your rank"):
            await challenge_system.create_challenge(*ids(players[0], players[1]))

    async def test_cannot_challenge_beyond_one_tier(self, challenge_system, players):
        with pytest.raises(BusinessRuleViolation, match="beyond 1 tier"):
            await challenge_system.create_challenge(*ids(players[3], players[0]))

    async def test_weekend_rejected(self, challenge_system, clock, players):
        clock.now = datetime(2024, 1, 13, 10, 0)
        with pytest.raises(BusinessRuleViolation, match="business days"):
            await challenge_system.create_challenge(*ids(players[2], players[1]))

    async def test_weekend_allowed_with_anytime(self, database, clock, players):
        system = build_system(database, clock, challenge_anytime=True)
        clock.now = datetime(2024, 1, 14, 10, 0)
        challenge = await system.create_challenge(*ids(players[2], players[1]))
        assert challenge["status"] == "pending"

    async def test_outstanding_challenges(self, challenge_system, players):
        p1, p2, p3, p4, _ = players
        await challenge_system.create_challenge(*ids(p3, p2))

        with pytest.raises(BusinessRuleViolation, match="already have an outgoing"):
            await challenge_system.create_challenge(*ids(p3, p1))
        with pytest.raises(BusinessRuleViolation, match="player2 already has an incoming"):
            await challenge_system.create_challenge(*ids(p4, p2))
        with pytest.raises(BusinessRuleViolation, match="incoming challenge to resolve first"):
            await challenge_system.create_challenge(*ids(p2, p1))

    async def test_reissue_cooldown(self, challenge_system, clock, players):
        challenger, challengee = players[2], players[1]
        challenge = await challenge_system.create_challenge(*ids(challenger, challengee))
        await challenge_system.revoke_challenge(challenge["challenge_id"], challenger["player_id"])

        clock.advance(hours=11, minutes=59)
        with pytest.raises(BusinessRuleViolation, match="wait at least 12 hours"):
            await challenge_system.create_challenge(*ids(challenger, challengee))

        clock.advance(minutes=1)
        again = await challenge_system.create_challenge(*ids(challenger, challengee))
        assert again["challenge_id"] != challenge["challenge_id"]

    async def test_concurrent_creation_respects_outgoing_limit(self, challenge_system, players):
        p1, p2, p3 = players[:3]

        results = await asyncio.gather(
            challenge_system.create_challenge(*ids(p3, p2)),
            challenge_system.create_challenge(*ids(p3, p1)),
            return_exceptions=True,
        )

        created = [result for result in results if isinstance(result, dict)]
        rejected = [result for result in results if isinstance(result, BusinessRuleViolation)]
        assert len(created) == 1
        assert len(rejected) == 1
        assert len(await challenge_system.get_pending_challenges(p3["player_id"])) == 1

    async def test_concurrent_creation_respects_incoming_limit(self, challenge_system, players):
        p2, p3, p4 = players[1:4]

        results = await asyncio.gather(
            challenge_system.create_challenge(*ids(p3, p2)),
            challenge_system.create_challenge(*ids(p4, p2)),
            return_exceptions=True,
        )

        assert sum(isinstance(result, dict) for result in results) == 1
        assert len(await challenge_system.get_pending_challenges(p2["player_id"])) == 1


class TestRevokeChallenge:
    async def test_challenger_revokes(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        await challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"])

        revoked = await challenge_system.get_challenge(challenge["challenge_id"])
        assert revoked["status"] == "revoked"

    async def test_only_challenger_may_revoke(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        with pytest.raises(Unauthorized, match="Only the challenger"):
            await challenge_system.revoke_challenge(challenge["challenge_id"], players[1]["player_id"])
        assert (await challenge_system.get_challenge(challenge["challenge_id"]))["status"] == "pending"

    async def test_revoke_is_not_repeatable(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"])

        with pytest.raises(InvalidState, match="already revoked"):
            await challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"])

    async def test_concurrent_revokes_succeed_once(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        results = await asyncio.gather(
            challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"]),
            challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"]),
            return_exceptions=True,
        )

        assert results.count(None) == 1
        assert sum(isinstance(result, InvalidState) for result in results) == 1

    async def test_unknown_challenge(self, challenge_system, players):
        with pytest.raises(NotFound):
            await challenge_system.revoke_challenge(42, players[0]["player_id"])

    async def test_revoking_frees_the_slot(self, challenge_system, players):
        p1, p2, p3 = players[:3]
        challenge = await challenge_system.create_challenge(*ids(p3, p2))
        await challenge_system.revoke_challenge(challenge["challenge_id"], p3["player_id"])

        other = await challenge_system.create_challenge(*ids(p3, p1))
        assert other["status"] == "pending"


class TestResolveChallenge:
    async def test_challengee_win_exchanges_ranks(self, database, challenge_system, players):
        challenger, challengee = players[2], players[1]
        challenge = await challenge_system.create_challenge(*ids(challenger, challengee))

        resolved = await challenge_system.resolve_challenge(
            challenge["challenge_id"], challenger["player_id"], 1, 3
        )

        assert resolved["status"] == "resolved"
        assert (resolved["challenger_score"], resolved["challengee_score"]) == (1, 3)
        assert resolved["rank_exchange"]["challenge_id"] == challenge["challenge_id"]
        assert await rank_of(database, challenger) == 2
        assert await rank_of(database, challengee) == 3

    async def test_challenger_win_keeps_ranks(self, database, challenge_system, players):
        challenger, challengee = players[2], players[1]
        challenge = await challenge_system.create_challenge(*ids(challenger, challengee))

        resolved = await challenge_system.resolve_challenge(
            challenge["challenge_id"], challengee["player_id"], 3, 0
        )

        assert resolved["rank_exchange"] is None
        assert await rank_of(database, challenger) == 3
        assert await rank_of(database, challengee) == 2
        assert await challenge_system.ranking_system.get_rank_exchanges() == []

    async def test_outsider_cannot_resolve(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        with pytest.raises(Unauthorized, match="Only an involved player"):
            await challenge_system.resolve_challenge(challenge["challenge_id"], players[4]["player_id"], 3, 1)

    @pytest.mark.parametrize("scores, message", [
        ((-1, 3), "must be positive"),
        ((2, 2), "cannot be equal"),
        ((1, 0), "at least 2 games"),
        ((4, 2), "No more than 5 games"),
    ])
    async def test_invalid_score_leaves_challenge_pending(self, database, challenge_system, players,
                                                          scores, message):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        with pytest.raises(InvalidScore, match=message):
            await challenge_system.resolve_challenge(challenge["challenge_id"], players[2]["player_id"], *scores)

        assert (await challenge_system.get_challenge(challenge["challenge_id"]))["status"] == "pending"
        assert await rank_of(database, players[2]) == 3

    async def test_cannot_resolve_twice(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.resolve_challenge(challenge["challenge_id"], players[2]["player_id"], 3, 0)

        with pytest.raises(InvalidState, match="already resolved"):
            await challenge_system.resolve_challenge(challenge["challenge_id"], players[1]["player_id"], 0, 3)

    async def test_cannot_resolve_revoked(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.revoke_challenge(challenge["challenge_id"], players[2]["player_id"])

        with pytest.raises(InvalidState):
            await challenge_system.resolve_challenge(challenge["challenge_id"], players[2]["player_id"], 3, 0)

    async def test_unknown_challenge(self, challenge_system, players):
        with pytest.raises(NotFound):
            await challenge_system.resolve_challenge(42, players[0]["player_id"], 3, 0)

    async def test_updated_at_follows_the_clock(self, challenge_system, clock, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        later = clock.advance(hours=3)

        resolved = await challenge_system.resolve_challenge(
            challenge["challenge_id"], players[1]["player_id"], 1, 3
        )

        assert resolved["created_at"] == START.isoformat()
        assert resolved["updated_at"] == later.isoformat()

    async def test_end_to_end_with_default_policy(self, database, challenge_system, clock, players):
        fourth, third = players[3], players[2]

        challenge = await challenge_system.create_challenge(*ids(fourth, third))
        resolved = await challenge_system.resolve_challenge(challenge["challenge_id"], fourth["player_id"], 2, 3)

        assert resolved["rank_exchange"] is not None
        assert await rank_of(database, fourth) == 3
        assert await rank_of(database, third) == 4

        # Same pair again inside the back delay, now from the other side
        clock.advance(hours=1)
        with pytest.raises(BusinessRuleViolation, match="wait at least 12 hours"):
            await challenge_system.create_challenge(*ids(third, fourth))

    async def test_upset_policy(self, database, clock, players):
        system = build_system(database, clock, rank_exchange_policy="upset")
        challenger, challengee = players[2], players[1]
        challenge = await system.create_challenge(*ids(challenger, challengee))

        resolved = await system.resolve_challenge(challenge["challenge_id"], challenger["player_id"], 3, 1)

        assert resolved["rank_exchange"] is not None
        assert await rank_of(database, challenger) == 2
        assert await rank_of(database, challengee) == 3

    async def test_store_failure_during_exchange_rolls_back_resolution(self, database, challenge_system,
                                                                       players, monkeypatch):
        challenger, challengee = players[2], players[1]
        challenge = await challenge_system.create_challenge(*ids(challenger, challengee))
        queries = challenge_system.ranking_system.queries
        real_set_rank = queries.set_rank
        calls = []

        async def failing_set_rank(db, player_id, rank):
            calls.append(rank)
            if len(calls) == 3:
                raise sqlite3.OperationalError("disk I/O error")
            return await real_set_rank(db, player_id, rank)

        monkeypatch.setattr(queries, "set_rank", failing_set_rank)

        with pytest.raises(PersistenceError):
            await challenge_system.resolve_challenge(
                challenge["challenge_id"], challengee["player_id"], 0, 3
            )

        unresolved = await challenge_system.get_challenge(challenge["challenge_id"])
        assert unresolved["status"] == "pending"
        assert unresolved["challenger_score"] is None
        assert unresolved["challengee_score"] is None
        assert await rank_of(database, challenger) == 3
        assert await rank_of(database, challengee) == 2
        assert await challenge_system.ranking_system.get_rank_exchanges() == []

    async def test_never_policy(self, database, clock, players):
        system = build_system(database, clock, rank_exchange_policy="never")
        challenge = await system.create_challenge(*ids(players[2], players[1]))

        resolved = await system.resolve_challenge(challenge["challenge_id"], players[2]["player_id"], 3, 2)

        assert resolved["rank_exchange"] is None
        assert await rank_of(database, players[2]) == 3


class TestForfeitChallenge:
    async def test_forfeit_is_a_no_contest(self, database, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))

        forfeited = await challenge_system.forfeit_challenge(challenge["challenge_id"], players[1]["player_id"])

        assert forfeited["status"] == "resolved"
        assert forfeited["challenger_score"] is None
        assert forfeited["challengee_score"] is None
        assert await rank_of(database, players[2]) == 3
        assert await rank_of(database, players[1]) == 2

    async def test_forfeit_without_actor(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        forfeited = await challenge_system.forfeit_challenge(challenge["challenge_id"])
        assert forfeited["status"] == "resolved"

    async def test_outsider_cannot_forfeit(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        with pytest.raises(Unauthorized):
            await challenge_system.forfeit_challenge(challenge["challenge_id"], players[0]["player_id"])

    async def test_forfeit_requires_pending(self, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.forfeit_challenge(challenge["challenge_id"])

        with pytest.raises(InvalidState):
            await challenge_system.forfeit_challenge(challenge["challenge_id"])

    async def test_forfeit_does_not_count_in_record(self, user_system, challenge_system, players):
        challenge = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.forfeit_challenge(challenge["challenge_id"])

        assert await user_system.get_player_record(players[2]["player_id"]) == {"wins": 0, "losses": 0}


class TestForfeitStaleChallenges:
    async def test_disabled_by_default(self, challenge_system, clock, players):
        await challenge_system.create_challenge(*ids(players[2], players[1]))
        clock.advance(days=30)
        assert await challenge_system.forfeit_stale_challenges() == 0

    async def test_forfeits_only_old_challenges(self, database, clock, players):
        system = build_system(database, clock, challenge_forfeit_hours=48)
        old = await system.create_challenge(*ids(players[4], players[3]))

        clock.advance(hours=49)
        fresh = await system.create_challenge(*ids(players[2], players[1]))

        assert await system.forfeit_stale_challenges() == 1
        assert (await system.get_challenge(old["challenge_id"]))["status"] == "resolved"
        assert (await system.get_challenge(fresh["challenge_id"]))["status"] == "pending"
        assert await rank_of(database, players[4]) == 5


class TestReads:
    async def test_player_challenges_newest_first(self, challenge_system, clock, players):
        first = await challenge_system.create_challenge(*ids(players[2], players[1]))
        await challenge_system.revoke_challenge(first["challenge_id"], players[2]["player_id"])
        clock.advance(hours=1)
        second = await challenge_system.create_challenge(*ids(players[2], players[0]))

        history = await challenge_system.get_player_challenges(players[2]["player_id"])
        assert [c["challenge_id"] for c in history] == [second["challenge_id"], first["challenge_id"]]

        revoked = await challenge_system.get_player_challenges(players[2]["player_id"], status="revoked")
        assert [c["challenge_id"] for c in revoked] == [first["challenge_id"]]

    async def test_get_unknown_challenge(self, challenge_system):
        with pytest.raises(NotFound):
            await challenge_system.get_challenge(7)
