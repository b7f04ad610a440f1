"""
Ranking System
Handles tier derivation, rank exchange policy and the atomic rank exchange
"""

import logging
import aiosqlite
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple, Callable, Iterable
from database.models import Database
from database.queries import DatabaseQueries
from systems.player_locks import PlayerLocks
from utils.exceptions import BusinessRuleViolation, NotFound, PersistenceError
from config import LadderSettings, TEMP_RANK

logger = logging.getLogger('LadderBot.RankingSystem')


class TierTable:
    """
    Buckets contiguous rank ranges into tiers

    Tier 1 holds the first `tier_sizes[0]` ranks, tier 2 the next
    `tier_sizes[1]`, and so on. Ranks past the last bucket have no tier.
    """

    def __init__(self, tier_sizes: Iterable[int]):
        self.tier_sizes = tuple(tier_sizes)
        self._bounds: List[Tuple[int, int]] = []

        first = 1
        for size in self.tier_sizes:
            self._bounds.append((first, first + size - 1))
            first += size

    @property
    def tier_count(self) -> int:
        return len(self._bounds)

    @property
    def max_rank(self) -> int:
        return self._bounds[-1][1] if self._bounds else 0

    def get_tier(self, rank: Optional[int]) -> Optional[int]:
        """Tier number of a rank, or None when the rank is outside every tier"""
        if rank is None or rank < 1:
            return None

        for tier, (first, last) in enumerate(self._bounds, start=1):
            if first <= rank <= last:
                return tier
        return None

    def tier_bounds(self, tier: int) -> Optional[Tuple[int, int]]:
        """First and last rank of a tier"""
        if tier < 1 or tier > len(self._bounds):
            return None
        return self._bounds[tier - 1]


class RankingSystem:
    def __init__(self, database: Database, settings: LadderSettings,
                 locks: Optional[PlayerLocks] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.db = database
        self.queries = DatabaseQueries(database.db_path)
        self.settings = settings
        self.locks = locks or PlayerLocks()
        self.clock = clock
        self.tiers = TierTable(settings.tier_sizes)

    def get_tier(self, rank: Optional[int]) -> Optional[int]:
        return self.tiers.get_tier(rank)

    def with_tier(self, player: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of a player row with its derived tier"""
        return {**player, 'tier': self.get_tier(player['rank'])}

    def should_exchange_ranks(self, challenger: Dict[str, Any], challengee: Dict[str, Any],
                              challenger_score: int, challengee_score: int) -> bool:
        """
        Decide whether a resolved challenge swaps the two players' ranks

        Policies:
            challengee_wins: the challengee outscored the challenger (default)
            upset: the winner held the worse (numerically larger) rank
            challenger_wins: the challenger won
            never: ranks are never exchanged on resolution
        """
        policy = self.settings.rank_exchange_policy
        challenger_won = challenger_score > challengee_score

        if policy == 'never':
            return False
        if policy == 'challenger_wins':
            return challenger_won
        if policy == 'challengee_wins':
            return not challenger_won

        winner, loser = (challenger, challengee) if challenger_won else (challengee, challenger)
        return winner['rank'] > loser['rank']

    async def exchange_ranks(self, player_a_id: int, player_b_id: int,
                             challenge_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Swap two players' ranks as one atomic, locked operation

        Args:
            player_a_id: First player
            player_b_id: Second player
            challenge_id: Challenge that triggered the exchange, None for admin corrections

        Returns:
            Dictionary describing the committed exchange
        """
        if player_a_id == player_b_id:
            raise BusinessRuleViolation("A player cannot exchange ranks with themselves.")

        async with self.locks.hold(player_a_id, player_b_id):
            async with self.db.transaction() as db:
                exchange = await self.exchange_in_transaction(db, player_a_id, player_b_id, challenge_id)

        logger.info(
            f"Exchanged ranks of players {player_a_id} and {player_b_id}: "
            f"{exchange['rank_a_before']} <-> {exchange['rank_b_before']}"
        )
        return exchange

    async def exchange_in_transaction(self, db: aiosqlite.Connection, player_a_id: int,
                                      player_b_id: int, challenge_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Run the three-write exchange on an open transaction

        The caller must hold both players' locks. The sentinel rank is only ever
        visible inside the transaction; any failure rolls all three writes back.
        """
        player_a = await self.queries.get_player(db, player_a_id)
        player_b = await self.queries.get_player(db, player_b_id)

        if not player_a:
            raise NotFound(f"Player {player_a_id} not found")
        if not player_b:
            raise NotFound(f"Player {player_b_id} not found")

        if not player_a['is_active'] or not player_b['is_active']:
            raise BusinessRuleViolation("Only active players can exchange ranks.")

        if TEMP_RANK in (player_a['rank'], player_b['rank']):
            raise PersistenceError("A player already holds the temporary rank; repair the ladder first.")

        rank_a = await self._set_rank(db, player_a, TEMP_RANK)
        rank_b = await self._set_rank(db, player_b, rank_a)
        await self._set_rank(db, player_a, rank_b)

        now = self.clock().isoformat()
        exchange_id = await self.queries.insert_rank_exchange(
            db, challenge_id, player_a_id, player_b_id, rank_a, rank_b, now
        )
        await self.queries.log_action(
            db, 'rank_exchange', player_a_id,
            f'Exchange {exchange_id}: {player_a["username"]} {rank_a} -> {rank_b}, '
            f'{player_b["username"]} {rank_b} -> {rank_a}, Challenge: {challenge_id}'
        )

        return {
            'exchange_id': exchange_id,
            'challenge_id': challenge_id,
            'player_a_id': player_a_id,
            'player_b_id': player_b_id,
            'rank_a_before': rank_a,
            'rank_b_before': rank_b,
            'created_at': now,
        }

    async def _set_rank(self, db: aiosqlite.Connection, player: Dict[str, Any], new_rank: int) -> int:
        """Write a player's rank and return the rank it replaced"""
        old_rank = player['rank']
        logger.debug(f"Changing rank of {player['username']} from [{old_rank}] to [{new_rank}]")

        if not await self.queries.set_rank(db, player['player_id'], new_rank):
            raise PersistenceError(f"Could not update rank of player {player['player_id']}")

        player['rank'] = new_rank
        return old_rank

    async def repair_sentinel_ranks(self) -> int:
        """
        Give any active player stuck on the temporary rank the missing ladder slot

        Ranks are contiguous from 1, so a player left on the sentinel by an
        interrupted writer belongs in the single gap it left behind.

        Returns:
            Number of players repaired
        """
        async with self.db.transaction() as db:
            stuck = await self.queries.get_players_with_rank(db, TEMP_RANK)
            if not stuck:
                return 0

            cursor = await db.execute('SELECT rank FROM players WHERE is_active = 1 AND rank != ?', (TEMP_RANK,))
            held = {row[0] for row in await cursor.fetchall()}
            active_count = len(held) + len(stuck)
            gaps = sorted(set(range(1, active_count + 1)) - held)

            if len(stuck) != 1 or len(gaps) != 1:
                raise PersistenceError(
                    f"Cannot repair ladder automatically: {len(stuck)} player(s) on the temporary rank, "
                    f"missing ranks {gaps}"
                )

            player = stuck[0]
            await self.queries.set_rank(db, player['player_id'], gaps[0])
            await self.queries.log_action(
                db, 'rank_repaired', player['player_id'],
                f"{player['username']} restored to rank {gaps[0]}"
            )

        logger.warning(f"Repaired player {player['username']} stuck on the temporary rank -> {gaps[0]}")
        return 1

    async def get_rank_exchanges(self, player_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return await self.db.get_rank_exchanges(player_id)
