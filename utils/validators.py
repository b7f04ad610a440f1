"""
Input Validation Helpers
Provides validation functions for reported scores and player inputs
"""

import re
from numbers import Real
from typing import Any, Optional, Tuple

MIN_GAMES_PER_SET = 2
MAX_GAMES_PER_SET = 5
MAX_USERNAME_LENGTH = 32


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class Validators:
    @staticmethod
    def validate_score(challenger_score: Any, challengee_score: Any) -> Tuple[bool, str]:
        """
        Validate a finished set's score pair

        Checks run in a fixed order so each bad score gets one specific reason:
        negative, non-integer, equal, too few games, too many games.

        Args:
            challenger_score: Games won by the challenger
            challengee_score: Games won by the challengee

        Returns:
            Tuple of (is_valid, error_message)
        """
        scores = (challenger_score, challengee_score)

        if any(_is_number(score) and score < 0 for score in scores):
            return False, "Both scores must be positive."

        if not all(isinstance(score, int) and not isinstance(score, bool) for score in scores):
            return False, "Both scores must be integers."

        if challenger_score == challengee_score:
            return False, "The final score cannot be equal."

        total_games = challenger_score + challengee_score
        if total_games < MIN_GAMES_PER_SET:
            return False, f"A valid set consists of at least {MIN_GAMES_PER_SET} games."

        if total_games > MAX_GAMES_PER_SET:
            return False, f"No more than {MAX_GAMES_PER_SET} games should be played in a set."

        return True, ""

    @staticmethod
    def parse_score(score: str) -> Optional[Tuple[int, int]]:
        """
        Parse a score typed as 'X-Y' (challenger first)

        Returns:
            Tuple of (challenger_score, challengee_score) or None if malformed
        """
        if not score:
            return None

        match = re.match(r'^\s*(-?\d{1,2})\s*-\s*(-?\d{1,2})\s*$', score)
        if not match:
            return None

        return int(match.group(1)), int(match.group(2))

    @staticmethod
    def validate_username(username: Optional[str]) -> Tuple[bool, str]:
        """
        Validate a ladder username

        Args:
            username: Display name to register

        Returns:
            Tuple of (is_valid, error_message)
        """
        if username is None or not username.strip():
            return False, "Username cannot be empty."

        if len(username.strip()) > MAX_USERNAME_LENGTH:
            return False, f"Username must be at most {MAX_USERNAME_LENGTH} characters long."

        return True, ""
