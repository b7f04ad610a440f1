"""
Challenge System
Handles the challenge lifecycle: creation, revocation, resolution and forfeits
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Callable
from database.models import Database
from database.queries import DatabaseQueries
from systems.eligibility_system import (
    EligibilityChain, ChallengeContext, verify_challenger, verify_involved
)
from systems.ranking_system import RankingSystem
from utils.exceptions import InvalidScore, InvalidState, NotFound, Unauthorized
from utils.validators import Validators
from config import LadderSettings

logger = logging.getLogger('LadderBot.ChallengeSystem')

class ChallengeSystem:
    def __init__(self, database: Database, ranking_system: RankingSystem,
                 settings: LadderSettings, clock: Callable[[], datetime] = datetime.now):
        self.db = database
        self.queries = DatabaseQueries(database.db_path)
        self.ranking_system = ranking_system
        self.settings = settings
        self.clock = clock
        self.locks = ranking_system.locks
        self.eligibility = EligibilityChain(settings, ranking_system.tiers)

    async def create_challenge(self, challenger_id: int, challengee_id: int) -> Dict[str, Any]:
        """
        Create a new pending challenge

        Args:
            challenger_id: Player issuing the challenge
            challengee_id: Player being challenged

        Returns:
            The created challenge

        Raises:
            NotFound: either player does not exist
            BusinessRuleViolation: an eligibility gate rejected the challenge
        """
        async with self.locks.hold(challenger_id, challengee_id):
            async with self.db.transaction() as db:
                challenger = await self.queries.get_player(db, challenger_id)
                challengee = await self.queries.get_player(db, challengee_id)

                if not challenger or not challenger['is_active']:
                    raise NotFound(f"Player {challenger_id} not found")
                if not challengee or not challengee['is_active']:
                    raise NotFound(f"Player {challengee_id} not found")

                now = self.clock()
                context = ChallengeContext(
                    challenger=challenger,
                    challengee=challengee,
                    now=now,
                    history=await self.queries.get_challenges_between(db, challenger_id, challengee_id),
                    challenger_pending=await self.queries.get_pending_challenges(db, challenger_id),
                    challengee_pending=await self.queries.get_pending_challenges(db, challengee_id),
                )
                self.eligibility.check_creation(context)

                challenge_id = await self.queries.insert_challenge(
                    db, challenger_id, challengee_id, now.isoformat()
                )
                await self.queries.log_action(
                    db, 'challenge_created', challenger_id,
                    f'Challenge {challenge_id}: {challenger["username"]} -> {challengee["username"]}'
                )
                challenge = await self.queries.get_challenge(db, challenge_id)

        logger.info(f'Created challenge {challenge_id} by {challenger["username"]} against {challengee["username"]}')
        return challenge

    async def revoke_challenge(self, challenge_id: int, actor_id: int) -> None:
        """
        Revoke a pending challenge; only its challenger may do so

        Raises:
            NotFound, InvalidState, Unauthorized
        """
        async with self.db.transaction() as db:
            challenge = await self._load_pending(db, challenge_id)

            allowed, reason = verify_challenger(
                challenge, actor_id, "Only the challenger can revoke this challenge."
            )
            if not allowed:
                raise Unauthorized(reason)

            await self._close(db, challenge, 'revoked')
            await self.queries.log_action(db, 'challenge_revoked', actor_id, f'Challenge {challenge_id}')

        logger.info(f'Challenge {challenge_id} revoked by player {actor_id}')

    async def resolve_challenge(self, challenge_id: int, actor_id: int,
                                challenger_score: int, challengee_score: int) -> Dict[str, Any]:
        """
        Record the score of a pending challenge and apply its rank effect

        The score update and any rank exchange commit together.

        Args:
            challenge_id: Challenge to resolve
            actor_id: Player reporting the score; must be a participant
            challenger_score: Games won by the challenger
            challengee_score: Games won by the challengee

        Returns:
            The resolved challenge, with 'rank_exchange' set when ranks were swapped

        Raises:
            NotFound, InvalidState, Unauthorized, InvalidScore, PersistenceError
        """
        challenge = await self.db.get_challenge(challenge_id)
        if not challenge:
            raise NotFound(f"Challenge {challenge_id} not found")

        async with self.locks.hold(challenge['challenger_id'], challenge['challengee_id']):
            async with self.db.transaction() as db:
                challenge = await self._load_pending(db, challenge_id)

                allowed, reason = verify_involved(
                    challenge, actor_id, "Only an involved player can resolve this challenge."
                )
                if not allowed:
                    raise Unauthorized(reason)

                valid, reason = Validators.validate_score(challenger_score, challengee_score)
                if not valid:
                    raise InvalidScore(reason)

                await self._close(db, challenge, 'resolved', challenger_score, challengee_score)

                challenger = await self.queries.get_player(db, challenge['challenger_id'])
                challengee = await self.queries.get_player(db, challenge['challengee_id'])

                exchange = None
                if self.ranking_system.should_exchange_ranks(
                    challenger, challengee, challenger_score, challengee_score
                ):
                    exchange = await self.ranking_system.exchange_in_transaction(
                        db, challenger['player_id'], challengee['player_id'], challenge_id
                    )

                await self.queries.log_action(
                    db, 'challenge_resolved', actor_id,
                    f'Challenge {challenge_id}: {challenger_score}-{challengee_score}, '
                    f'Rank exchange: {exchange["exchange_id"] if exchange else None}'
                )
                resolved = await self.queries.get_challenge(db, challenge_id)

        logger.info(
            f'Challenge {challenge_id} resolved {challenger_score}-{challengee_score} by player {actor_id}'
            + (' with rank exchange' if exchange else '')
        )
        resolved['rank_exchange'] = exchange
        return resolved

    async def forfeit_challenge(self, challenge_id: int, actor_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Close a pending challenge as resolved with no score

        Forfeits have no rank effect. When an actor is given they must be a participant.

        Raises:
            NotFound, InvalidState, Unauthorized
        """
        async with self.db.transaction() as db:
            challenge = await self._load_pending(db, challenge_id)

            if actor_id is not None:
                allowed, reason = verify_involved(
                    challenge, actor_id, "Only an involved player can forfeit this challenge."
                )
                if not allowed:
                    raise Unauthorized(reason)

            await self._close(db, challenge, 'resolved')
            await self.queries.log_action(db, 'challenge_forfeited', actor_id, f'Challenge {challenge_id}')
            forfeited = await self.queries.get_challenge(db, challenge_id)

        logger.info(f'Challenge {challenge_id} forfeited')
        return forfeited

    async def forfeit_stale_challenges(self) -> int:
        """
        Forfeit pending challenges older than CHALLENGE_FORFEIT_HOURS

        Returns:
            Number of challenges forfeited (0 when the limit is not configured)
        """
        if not self.settings.challenge_forfeit_hours:
            return 0

        cutoff = self.clock() - timedelta(hours=self.settings.challenge_forfeit_hours)
        stale = await self.queries.get_pending_created_before(cutoff.isoformat())

        forfeited = 0
        for challenge in stale:
            try:
                await self.forfeit_challenge(challenge['challenge_id'])
                forfeited += 1
            except InvalidState:
                # Closed by a participant since the scan
                continue

        if forfeited:
            logger.info(f'Forfeited {forfeited} stale challenge(s)')
        return forfeited

    async def get_challenge(self, challenge_id: int) -> Dict[str, Any]:
        challenge = await self.db.get_challenge(challenge_id)
        if not challenge:
            raise NotFound(f"Challenge {challenge_id} not found")
        return challenge

    async def get_player_challenges(self, player_id: int, status: Optional[str] = None,
                                    limit: int = 50) -> List[Dict[str, Any]]:
        return await self.db.get_player_challenges(player_id, status=status, limit=limit)

    async def get_pending_challenges(self, player_id: int) -> List[Dict[str, Any]]:
        return await self.db.get_player_challenges(player_id, status='pending')

    async def _load_pending(self, db, challenge_id: int) -> Dict[str, Any]:
        challenge = await self.queries.get_challenge(db, challenge_id)
        if not challenge:
            raise NotFound(f"Challenge {challenge_id} not found")
        if challenge['status'] != 'pending':
            raise InvalidState(f"Challenge {challenge_id} is already {challenge['status']}.")
        return challenge

    async def _close(self, db, challenge: Dict[str, Any], status: str,
                     challenger_score: Optional[int] = None, challengee_score: Optional[int] = None):
        closed = await self.queries.close_challenge(
            db, challenge['challenge_id'], status, self.clock().isoformat(),
            challenger_score, challengee_score
        )
        if not closed:
            raise InvalidState(f"Challenge {challenge['challenge_id']} is no longer pending.")
