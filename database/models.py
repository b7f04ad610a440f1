"""
Database Models and Connection Handling
SQLite database schema, connection and transaction management for LadderBot
"""

import sqlite3
import aiosqlite
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Dict, Any, List, AsyncIterator
from config import DATABASE_CONFIG, CHALLENGE_STATUSES
from utils.exceptions import PersistenceError

logger = logging.getLogger('LadderBot.Database')

STATUS_LIST = ', '.join(f"'{status}'" for status in CHALLENGE_STATUSES)

class Database:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or DATABASE_CONFIG['database_path']

        # Ensure database directory exists
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    async def initialize(self):
        """Initialize the database and create tables if they don't exist"""
        logger.info('Initializing database...')

        async with aiosqlite.connect(self.db_path) as db:
            await self._create_tables(db)
            await db.commit()

        logger.info('Database initialization complete')

    async def _create_tables(self, db: aiosqlite.Connection):
        """Create all necessary tables"""

        # Players table - rank 1 is the top of the ladder
        await db.execute('''
            CREATE TABLE IF NOT EXISTS players (
                player_id INTEGER PRIMARY KEY AUTOINCREMENT,
                discord_id INTEGER UNIQUE,
                username TEXT NOT NULL UNIQUE CHECK(length(trim(username)) > 0),
                rank INTEGER NOT NULL,
                is_active BOOLEAN NOT NULL DEFAULT 1,
                joined_date TIMESTAMP NOT NULL
            )
        ''')

        # Challenges table - rows are never deleted
        await db.execute(f'''
            CREATE TABLE IF NOT EXISTS challenges (
                challenge_id INTEGER PRIMARY KEY AUTOINCREMENT,
                challenger_id INTEGER NOT NULL,
                challengee_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ({STATUS_LIST})),
                challenger_score INTEGER,
                challengee_score INTEGER,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL,
                CHECK(challenger_id != challengee_id),
                FOREIGN KEY (challenger_id) REFERENCES players (player_id),
                FOREIGN KEY (challengee_id) REFERENCES players (player_id)
            )
        ''')

        # Rank exchange journal, written in the same transaction as the swap
        await db.execute('''
            CREATE TABLE IF NOT EXISTS rank_exchanges (
                exchange_id INTEGER PRIMARY KEY AUTOINCREMENT,
                challenge_id INTEGER,
                player_a_id INTEGER NOT NULL,
                player_b_id INTEGER NOT NULL,
                rank_a_before INTEGER NOT NULL,
                rank_b_before INTEGER NOT NULL,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (challenge_id) REFERENCES challenges (challenge_id),
                FOREIGN KEY (player_a_id) REFERENCES players (player_id),
                FOREIGN KEY (player_b_id) REFERENCES players (player_id)
            )
        ''')

        # Bot logs table (for tracking bot actions)
        await db.execute('''
            CREATE TABLE IF NOT EXISTS bot_logs (
                log_id INTEGER PRIMARY KEY AUTOINCREMENT,
                action_type TEXT NOT NULL,
                user_id INTEGER,
                details TEXT,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # Ranks are unique among active players
        await db.execute(
            'CREATE UNIQUE INDEX IF NOT EXISTS idx_players_active_rank ON players (rank) WHERE is_active = 1'
        )
        await db.execute('CREATE INDEX IF NOT EXISTS idx_challenges_status ON challenges (status)')
        await db.execute('CREATE INDEX IF NOT EXISTS idx_challenges_pair ON challenges (challenger_id, challengee_id)')
        await db.execute('CREATE INDEX IF NOT EXISTS idx_rank_exchanges_players ON rank_exchanges (player_a_id, player_b_id)')

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Open a connection holding the database write lock for the whole block

        Commits when the block exits normally and rolls back otherwise.
        SQLite errors are re-raised as PersistenceError.
        """
        try:
            async with aiosqlite.connect(self.db_path, isolation_level=None) as db:
                db.row_factory = aiosqlite.Row
                await db.execute('PRAGMA foreign_keys = ON')
                await db.execute('BEGIN IMMEDIATE')
                try:
                    yield db
                except BaseException:
                    await db.execute('ROLLBACK')
                    raise
                await db.execute('COMMIT')
        except sqlite3.Error as e:
            logger.error(f'Transaction rolled back: {e}')
            raise PersistenceError(f'Database error: {e}') from e

    async def log_action(self, action_type: str, user_id: Optional[int] = None, details: Optional[str] = None):
        """Log a bot action to the database"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                'INSERT INTO bot_logs (action_type, user_id, details) VALUES (?, ?, ?)',
                (action_type, user_id, details)
            )
            await db.commit()

    # Player reads
    async def get_player(self, player_id: int) -> Optional[Dict[str, Any]]:
        """Get player by ID"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                'SELECT * FROM players WHERE player_id = ?',
                (player_id,)
            )
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def get_player_by_discord_id(self, discord_id: int) -> Optional[Dict[str, Any]]:
        """Get the player linked to a Discord account"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                'SELECT * FROM players WHERE discord_id = ?',
                (discord_id,)
            )
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def get_ladder(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get active players ordered by rank (top of the ladder first)"""
        query = 'SELECT * FROM players WHERE is_active = 1 ORDER BY rank ASC'
        params: tuple = ()
        if limit is not None:
            query += ' LIMIT ?'
            params = (limit,)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    # Challenge reads
    async def get_challenge(self, challenge_id: int) -> Optional[Dict[str, Any]]:
        """Get challenge by ID"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                'SELECT * FROM challenges WHERE challenge_id = ?',
                (challenge_id,)
            )
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def get_player_challenges(self, player_id: int, status: Optional[str] = None,
                                    limit: int = 50) -> List[Dict[str, Any]]:
        """Get challenges a player took part in, newest first"""
        query = 'SELECT * FROM challenges WHERE (challenger_id = ? OR challengee_id = ?)'
        params: list = [player_id, player_id]

        if status:
            query += ' AND status = ?'
            params.append(status)

        query += ' ORDER BY updated_at DESC, challenge_id DESC LIMIT ?'
        params.append(limit)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def get_rank_exchanges(self, player_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get journalled rank exchanges, newest first"""
        query = 'SELECT * FROM rank_exchanges'
        params: tuple = ()
        if player_id is not None:
            query += ' WHERE player_a_id = ? OR player_b_id = ?'
            params = (player_id, player_id)
        query += ' ORDER BY exchange_id DESC'

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]
