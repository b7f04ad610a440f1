"""
User Management System
Handles player registration, identity lookup and profile reads
"""

import discord
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List, Callable
from database.models import Database
from database.queries import DatabaseQueries
from systems.ranking_system import RankingSystem
from utils.exceptions import BusinessRuleViolation, NotFound
from utils.validators import Validators

logger = logging.getLogger('LadderBot.UserSystem')

class UserSystem:
    def __init__(self, database: Database, ranking_system: RankingSystem,
                 clock: Callable[[], datetime] = datetime.now):
        self.db = database
        self.queries = DatabaseQueries(database.db_path)
        self.ranking_system = ranking_system
        self.clock = clock

    async def register_player(self, username: str, discord_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Register a new player at the bottom of the ladder

        Args:
            username: Unique, non-empty display name
            discord_id: Optional Discord account to link

        Returns:
            The created player

        Raises:
            BusinessRuleViolation: invalid or duplicate username, or Discord account already linked
        """
        valid, reason = Validators.validate_username(username)
        if not valid:
            raise BusinessRuleViolation(reason)
        username = username.strip()

        async with self.db.transaction() as db:
            cursor = await db.execute('SELECT 1 FROM players WHERE username = ?', (username,))
            if await cursor.fetchone():
                raise BusinessRuleViolation(f"The username '{username}' is already taken.")

            if discord_id is not None:
                cursor = await db.execute('SELECT 1 FROM players WHERE discord_id = ?', (discord_id,))
                if await cursor.fetchone():
                    raise BusinessRuleViolation("This Discord account is already registered.")

            rank = await self.queries.get_lowest_rank(db) + 1
            player_id = await self.queries.insert_player(
                db, username, rank, self.clock().isoformat(), discord_id
            )
            await self.queries.log_action(db, 'player_registered', player_id, f'Username: {username}, Rank: {rank}')
            player = await self.queries.get_player(db, player_id)

        logger.info(f'New player registered: {username} ({player_id}) at rank {rank}')
        return player

    async def resolve_player_id(self, member: discord.abc.User) -> int:
        """
        Map an authenticated Discord member to their player ID

        Raises:
            NotFound: the member has not registered on the ladder
        """
        player = await self.db.get_player_by_discord_id(member.id)
        if not player:
            raise NotFound(f"{member.display_name} is not registered on the ladder.")
        return player['player_id']

    async def get_player(self, player_id: int) -> Dict[str, Any]:
        player = await self.db.get_player(player_id)
        if not player:
            raise NotFound(f"Player {player_id} not found")
        return self.ranking_system.with_tier(player)

    async def get_player_by_discord_id(self, discord_id: int) -> Optional[Dict[str, Any]]:
        player = await self.db.get_player_by_discord_id(discord_id)
        return self.ranking_system.with_tier(player) if player else None

    async def get_ladder(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Active players by rank, each with its derived tier"""
        players = await self.db.get_ladder(limit)
        return [self.ranking_system.with_tier(player) for player in players]

    async def get_player_record(self, player_id: int) -> Dict[str, int]:
        """Wins and losses of a player over scored, resolved challenges"""
        if not await self.db.get_player(player_id):
            raise NotFound(f"Player {player_id} not found")
        return await self.queries.get_player_record(player_id)

    async def get_player_profile(self, player_id: int) -> Dict[str, Any]:
        """Player row with tier, record and pending challenge count"""
        player = await self.get_player(player_id)
        record = await self.queries.get_player_record(player_id)
        pending = await self.db.get_player_challenges(player_id, status='pending')

        total = record['wins'] + record['losses']
        return {
            **player,
            **record,
            'games_played': total,
            'win_rate': (record['wins'] / total * 100) if total else 0.0,
            'pending_challenges': len(pending),
        }
