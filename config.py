"""
LadderBot Configuration
Contains bot settings, ladder rules, tier structure and display constants
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

# Bot Configuration
BOT_CONFIG = {
    'bot_token': os.getenv('DISCORD_BOT_TOKEN'),
    'command_prefix': '?',
}

# Database Configuration
DATABASE_CONFIG = {
    'database_path': os.getenv('DATABASE_PATH', 'database/ladder.db'),
}

# Sentinel rank held by a player between the first and last write of a rank exchange
TEMP_RANK = -1

# Challenge statuses (pending is the only non-terminal state)
CHALLENGE_STATUSES = ('pending', 'resolved', 'revoked', 'forfeited')

# When a resolved challenge swaps the two players' ranks
RANK_EXCHANGE_POLICIES = ('challengee_wins', 'upset', 'challenger_wins', 'never')

# Default tier sizes: a pyramid where tier N holds N ranks
DEFAULT_TIER_SIZES = tuple(range(1, 11))

# Embed Colors
EMBED_COLORS = {
    'success': 0x00ff00,
    'error': 0xff0000,
    'warning': 0xffff00,
    'info': 0x0099ff,
    'neutral': 0x808080,
    'challenge': 0xff6b00,
    'rank': 0xffd700,
}

CLEANUP_TIMINGS = {
    'error': 30,           # Error messages - quick cleanup
    'confirmation': 60,    # Command confirmations
    'info': 90,            # Profile, help displays
    'ladder': 150,         # Longer viewing time
}

# Bot Limits
BOT_LIMITS = {
    'max_ladder_entries': 25,
    'max_challenges_listed': 10,
}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


def _env_tier_sizes(name: str) -> Tuple[int, ...]:
    value = os.getenv(name)
    if not value:
        return DEFAULT_TIER_SIZES
    return tuple(int(part) for part in value.split(',') if part.strip())


@dataclass(frozen=True)
class LadderSettings:
    """Ladder rules, resolved once at start-up and handed to the systems that need them"""
    challenge_anytime: bool = False
    challenge_back_delay_hours: int = 12
    allowed_outgoing: int = 1
    allowed_incoming: int = 1
    tier_sizes: Tuple[int, ...] = DEFAULT_TIER_SIZES
    rank_exchange_policy: str = 'challengee_wins'
    challenge_forfeit_hours: Optional[int] = None

    def __post_init__(self):
        if self.rank_exchange_policy not in RANK_EXCHANGE_POLICIES:
            raise ValueError(
                f"Invalid rank exchange policy '{self.rank_exchange_policy}'. "
                f"Valid policies: {', '.join(RANK_EXCHANGE_POLICIES)}"
            )
        if any(size < 1 for size in self.tier_sizes):
            raise ValueError("Tier sizes must all be at least 1")
        if self.challenge_back_delay_hours < 0:
            raise ValueError("Challenge back delay cannot be negative")

    @classmethod
    def from_env(cls) -> 'LadderSettings':
        """Build settings from CHALLENGE_* / ALLOWED_* / LADDER_* environment variables"""
        return cls(
            challenge_anytime=_env_bool('CHALLENGE_ANYTIME'),
            challenge_back_delay_hours=_env_int('CHALLENGE_BACK_DELAY_HOURS', 12),
            allowed_outgoing=_env_int('ALLOWED_OUTGOING', 1),
            allowed_incoming=_env_int('ALLOWED_INCOMING', 1),
            tier_sizes=_env_tier_sizes('LADDER_TIER_SIZES'),
            rank_exchange_policy=os.getenv('RANK_EXCHANGE_POLICY', 'challengee_wins'),
            challenge_forfeit_hours=_env_int('CHALLENGE_FORFEIT_HOURS', None),
        )
