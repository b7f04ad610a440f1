"""
Database Query Utilities
Statements that run on a caller-owned connection, so several of them can share
one transaction, plus aggregate queries for LadderBot
"""

import aiosqlite
from typing import Optional, Dict, Any, List

class DatabaseQueries:
    def __init__(self, db_path: str):
        self.db_path = db_path

    # Reads inside a transaction
    async def get_player(self, db: aiosqlite.Connection, player_id: int) -> Optional[Dict[str, Any]]:
        cursor = await db.execute('SELECT * FROM players WHERE player_id = ?', (player_id,))
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def get_challenge(self, db: aiosqlite.Connection, challenge_id: int) -> Optional[Dict[str, Any]]:
        cursor = await db.execute('SELECT * FROM challenges WHERE challenge_id = ?', (challenge_id,))
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def get_pending_challenges(self, db: aiosqlite.Connection, player_id: int) -> List[Dict[str, Any]]:
        """Pending challenges where the player is either participant"""
        cursor = await db.execute(
            '''SELECT * FROM challenges
               WHERE (challenger_id = ? OR challengee_id = ?)
               AND status = 'pending'
               ORDER BY created_at ASC''',
            (player_id, player_id)
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def get_challenges_between(self, db: aiosqlite.Connection, player1_id: int,
                                     player2_id: int) -> List[Dict[str, Any]]:
        """Every challenge between two players, in either direction"""
        cursor = await db.execute(
            '''SELECT * FROM challenges
               WHERE (challenger_id = ? AND challengee_id = ?) OR
                     (challenger_id = ? AND challengee_id = ?)
               ORDER BY updated_at DESC''',
            (player1_id, player2_id, player2_id, player1_id)
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def get_lowest_rank(self, db: aiosqlite.Connection) -> int:
        """Numerically largest rank held by an active player (0 on an empty ladder)"""
        cursor = await db.execute('SELECT COALESCE(MAX(rank), 0) FROM players WHERE is_active = 1')
        return (await cursor.fetchone())[0]

    async def get_players_with_rank(self, db: aiosqlite.Connection, rank: int) -> List[Dict[str, Any]]:
        cursor = await db.execute(
            'SELECT * FROM players WHERE rank = ? AND is_active = 1',
            (rank,)
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # Writes inside a transaction
    async def insert_player(self, db: aiosqlite.Connection, username: str, rank: int,
                            joined_date: str, discord_id: Optional[int] = None) -> int:
        cursor = await db.execute(
            '''INSERT INTO players (discord_id, username, rank, joined_date)
               VALUES (?, ?, ?, ?)''',
            (discord_id, username, rank, joined_date)
        )
        return cursor.lastrowid

    async def set_rank(self, db: aiosqlite.Connection, player_id: int, rank: int) -> bool:
        cursor = await db.execute(
            'UPDATE players SET rank = ? WHERE player_id = ?',
            (rank, player_id)
        )
        return cursor.rowcount > 0

    async def insert_challenge(self, db: aiosqlite.Connection, challenger_id: int,
                               challengee_id: int, created_at: str) -> int:
        cursor = await db.execute(
            '''INSERT INTO challenges (challenger_id, challengee_id, status, created_at, updated_at)
               VALUES (?, ?, 'pending', ?, ?)''',
            (challenger_id, challengee_id, created_at, created_at)
        )
        return cursor.lastrowid

    async def close_challenge(self, db: aiosqlite.Connection, challenge_id: int, status: str,
                              updated_at: str, challenger_score: Optional[int] = None,
                              challengee_score: Optional[int] = None) -> bool:
        """
        Move a pending challenge to a terminal status

        Returns False when the challenge was no longer pending.
        """
        cursor = await db.execute(
            '''UPDATE challenges
               SET status = ?, challenger_score = ?, challengee_score = ?, updated_at = ?
               WHERE challenge_id = ? AND status = 'pending' ''',
            (status, challenger_score, challengee_score, updated_at, challenge_id)
        )
        return cursor.rowcount > 0

    async def insert_rank_exchange(self, db: aiosqlite.Connection, challenge_id: Optional[int],
                                   player_a_id: int, player_b_id: int, rank_a_before: int,
                                   rank_b_before: int, created_at: str) -> int:
        cursor = await db.execute(
            '''INSERT INTO rank_exchanges
               (challenge_id, player_a_id, player_b_id, rank_a_before, rank_b_before, created_at)
               VALUES (?, ?, ?, ?, ?, ?)''',
            (challenge_id, player_a_id, player_b_id, rank_a_before, rank_b_before, created_at)
        )
        return cursor.lastrowid

    async def log_action(self, db: aiosqlite.Connection, action_type: str,
                         user_id: Optional[int] = None, details: Optional[str] = None):
        await db.execute(
            'INSERT INTO bot_logs (action_type, user_id, details) VALUES (?, ?, ?)',
            (action_type, user_id, details)
        )

    # Aggregate queries on their own connection
    async def get_player_record(self, player_id: int) -> Dict[str, int]:
        """Wins and losses over resolved challenges that carry a score"""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                '''SELECT
                       SUM(CASE WHEN (challenger_id = ? AND challenger_score > challengee_score)
                                  OR (challengee_id = ? AND challengee_score > challenger_score)
                                THEN 1 ELSE 0 END) AS wins,
                       SUM(CASE WHEN (challenger_id = ? AND challenger_score < challengee_score)
                                  OR (challengee_id = ? AND challengee_score < challenger_score)
                                THEN 1 ELSE 0 END) AS losses
                   FROM challenges
                   WHERE (challenger_id = ? OR challengee_id = ?)
                   AND status = 'resolved'
                   AND challenger_score IS NOT NULL AND challengee_score IS NOT NULL''',
                (player_id,) * 6
            )
            row = await cursor.fetchone()
            return {'wins': row[0] or 0, 'losses': row[1] or 0}

    async def get_pending_created_before(self, cutoff: str) -> List[Dict[str, Any]]:
        """Pending challenges created before the cutoff timestamp"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                '''SELECT * FROM challenges
                   WHERE status = 'pending' AND created_at < ?
                   ORDER BY created_at ASC''',
                (cutoff,)
            )
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]
