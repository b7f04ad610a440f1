"""
Systems Package
Core business logic systems for LadderBot
"""

from .player_locks import PlayerLocks
from .ranking_system import RankingSystem, TierTable
from .eligibility_system import EligibilityChain, ChallengeContext
from .challenge_system import ChallengeSystem
from .user_system import UserSystem

__all__ = [
    'PlayerLocks',
    'RankingSystem',
    'TierTable',
    'EligibilityChain',
    'ChallengeContext',
    'ChallengeSystem',
    'UserSystem'
]
