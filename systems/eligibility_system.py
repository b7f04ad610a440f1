"""
Eligibility System
Ordered, independent gates a challenge must pass before it is created,
plus the involvement checks used when a challenge is revoked or resolved
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Tuple
from systems.ranking_system import TierTable
from utils.exceptions import BusinessRuleViolation
from config import LadderSettings

logger = logging.getLogger('LadderBot.EligibilitySystem')

GateResult = Tuple[bool, str]


@dataclass(frozen=True)
class ChallengeContext:
    """Snapshot of everything the creation gates look at"""
    challenger: Dict[str, Any]
    challengee: Dict[str, Any]
    now: datetime
    history: List[Dict[str, Any]] = field(default_factory=list)
    challenger_pending: List[Dict[str, Any]] = field(default_factory=list)
    challengee_pending: List[Dict[str, Any]] = field(default_factory=list)


def _parse_timestamp(value: Any) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


def verify_challenger(challenge: Dict[str, Any], player_id: int,
                      message: str = "Expected the player to be the challenger.") -> GateResult:
    if challenge['challenger_id'] == player_id:
        return True, ""
    return False, message


def verify_challengee(challenge: Dict[str, Any], player_id: int,
                      message: str = "Expected the player to be the challengee.") -> GateResult:
    if challenge['challengee_id'] == player_id:
        return True, ""
    return False, message


def verify_involved(challenge: Dict[str, Any], player_id: int,
                    message: str = "Expected the player to be the challenger or challengee.") -> GateResult:
    if player_id in (challenge['challenger_id'], challenge['challengee_id']):
        return True, ""
    return False, message


class EligibilityChain:
    def __init__(self, settings: LadderSettings, tiers: TierTable):
        self.settings = settings
        self.tiers = tiers

    def creation_gates(self) -> List[Callable[[ChallengeContext], GateResult]]:
        """Creation gates in evaluation order"""
        return [
            self.verify_not_self,
            self.verify_business_day,
            self.verify_reissue_time,
            self.verify_rank,
            self.verify_tier,
            self.verify_outstanding,
        ]

    def check_creation(self, context: ChallengeContext) -> None:
        """
        Run the creation gates in order, stopping at the first failure

        Raises:
            BusinessRuleViolation: carrying the failing gate's reason
        """
        for gate in self.creation_gates():
            allowed, reason = gate(context)
            if not allowed:
                logger.info(
                    f"Challenge {context.challenger['username']} -> {context.challengee['username']} "
                    f"rejected by {gate.__name__}: {reason}"
                )
                raise BusinessRuleViolation(reason)

    def verify_not_self(self, context: ChallengeContext) -> GateResult:
        if context.challenger['player_id'] == context.challengee['player_id']:
            return False, "Players cannot challenge themselves."
        return True, ""

    def verify_business_day(self, context: ChallengeContext) -> GateResult:
        if self.settings.challenge_anytime or context.now.weekday() < 5:
            return True, ""
        return False, "You can only issue challenges on business days."

    def verify_reissue_time(self, context: ChallengeContext) -> GateResult:
        """The pair must wait out the back delay after their most recently updated challenge"""
        if not context.history:
            return True, ""

        most_recent = max(_parse_timestamp(challenge['updated_at']) for challenge in context.history)
        reissue_time = most_recent + timedelta(hours=self.settings.challenge_back_delay_hours)

        if context.now >= reissue_time:
            return True, ""

        return False, (
            f"You must wait at least {self.settings.challenge_back_delay_hours} hours "
            f"before re-challenging the same opponent."
        )

    def verify_rank(self, context: ChallengeContext) -> GateResult:
        if context.challenger['rank'] < context.challengee['rank']:
            return False, "You cannot challenge an opponent below your rank."
        return True, ""

    def verify_tier(self, context: ChallengeContext) -> GateResult:
        challenger_tier = self.tiers.get_tier(context.challenger['rank'])
        challengee_tier = self.tiers.get_tier(context.challengee['rank'])

        if not challenger_tier:
            return False, f"{context.challenger['username']} is not in any tier."
        if not challengee_tier:
            return False, f"{context.challengee['username']} is not in any tier."

        if abs(challenger_tier - challengee_tier) > 1:
            return False, "You cannot challenge an opponent beyond 1 tier."
        return True, ""

    def verify_outstanding(self, context: ChallengeContext) -> GateResult:
        """Neither player may already be at their limit of pending challenges"""
        challenger_id = context.challenger['player_id']
        challengee_id = context.challengee['player_id']

        checks = (
            (context.challenger_pending, challenger_id, 'challenger_id', self.settings.allowed_outgoing,
             "You already have an outgoing challenge. Resolve or revoke it first."),
            (context.challenger_pending, challenger_id, 'challengee_id', self.settings.allowed_incoming,
             "You have an incoming challenge to resolve first."),
            (context.challengee_pending, challengee_id, 'challenger_id', self.settings.allowed_outgoing,
             f"{context.challengee['username']} already has an outgoing challenge."),
            (context.challengee_pending, challengee_id, 'challengee_id', self.settings.allowed_incoming,
             f"{context.challengee['username']} already has an incoming challenge."),
        )

        for pending, player_id, role, allowed, reason in checks:
            count = sum(1 for challenge in pending if challenge[role] == player_id)
            if count >= allowed:
                return False, reason
        return True, ""
