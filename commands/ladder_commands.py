"""
Ladder Commands
Player-facing commands: registration, standings, profiles and the challenge lifecycle
"""

import discord
from discord.ext import commands
import logging
from typing import Optional
from utils.embeds import EmbedTemplates
from utils.validators import Validators
from utils.exceptions import InvalidScore
from config import BOT_LIMITS, CLEANUP_TIMINGS

logger = logging.getLogger('LadderBot.LadderCommands')

async def setup_ladder_commands(bot):
    """Setup ladder commands for the bot"""
    await bot.add_cog(LadderCommands(bot))

class LadderCommands(commands.Cog):
    def __init__(self, bot):
        self.bot = bot
        self.user_system = bot.user_system
        self.challenge_system = bot.challenge_system
        self.ranking_system = bot.ranking_system

    async def _player_names(self, *challenge_lists) -> dict:
        names = {}
        for challenges in challenge_lists:
            for challenge in challenges:
                for player_id in (challenge['challenger_id'], challenge['challengee_id']):
                    if player_id not in names:
                        player = await self.user_system.get_player(player_id)
                        names[player_id] = player['username']
        return names

    @commands.command(name='register', aliases=['join'])
    async def register(self, ctx):
        """
        Join the ladder at the bottom rank
        Usage: ?register
        """
        existing = await self.user_system.get_player_by_discord_id(ctx.author.id)
        if existing:
            embed = EmbedTemplates.warning_embed(
                "Already Registered",
                f"You are already on the ladder at rank #{existing['rank']}."
            )
            await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['confirmation'])
            return

        player = await self.user_system.register_player(ctx.author.display_name, discord_id=ctx.author.id)
        embed = EmbedTemplates.success_embed(
            "Registered",
            f"Welcome **{player['username']}**! You start at rank #{player['rank']}."
        )
        await ctx.send(embed=embed)

    @commands.command(name='ladder', aliases=['lb', 'standings'])
    async def ladder(self, ctx, count: int = BOT_LIMITS['max_ladder_entries']):
        """
        View ladder standings
        Usage: ?ladder [count]
        """
        if count < 1 or count > 50:
            embed = EmbedTemplates.error_embed("Invalid Count", "Ladder count must be between 1 and 50")
            await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['error'])
            return

        players = await self.user_system.get_ladder(limit=count)
        embed = EmbedTemplates.ladder_embed(players, f"Top {count}")
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['ladder'])

    @commands.command(name='profile', aliases=['stats'])
    async def profile(self, ctx, target: Optional[discord.Member] = None):
        """
        View a player's profile
        Usage: ?profile [@user]
        """
        target = target or ctx.author
        player_id = await self.user_system.resolve_player_id(target)
        profile = await self.user_system.get_player_profile(player_id)

        embed = EmbedTemplates.profile_embed(profile, target)
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['info'])

    @commands.command(name='challenge', aliases=['duel'])
    async def challenge(self, ctx, target: discord.Member):
        """
        Challenge a player at or above your standing
        Usage: ?challenge @user
        """
        challenger_id = await self.user_system.resolve_player_id(ctx.author)
        challengee_id = await self.user_system.resolve_player_id(target)

        challenge = await self.challenge_system.create_challenge(challenger_id, challengee_id)

        challenger = await self.user_system.get_player(challenger_id)
        challengee = await self.user_system.get_player(challengee_id)
        embed = EmbedTemplates.challenge_embed(challenge, challenger, challengee)
        await ctx.send(content=target.mention, embed=embed)

    @commands.command(name='revoke', aliases=['cancel'])
    async def revoke(self, ctx, challenge_id: int):
        """
        Revoke a challenge you issued
        Usage: ?revoke <challenge_id>
        """
        actor_id = await self.user_system.resolve_player_id(ctx.author)
        await self.challenge_system.revoke_challenge(challenge_id, actor_id)

        embed = EmbedTemplates.success_embed("Challenge Revoked", f"Challenge #{challenge_id} was revoked.")
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['confirmation'])

    @commands.command(name='resolve', aliases=['score', 'report'])
    async def resolve(self, ctx, challenge_id: int, score: str):
        """
        Report the score of a challenge you played (challenger's games first)
        Usage: ?resolve <challenge_id> <X-Y>
        """
        parsed = Validators.parse_score(score)
        if not parsed:
            raise InvalidScore("Score must be in format 'X-Y' (e.g., '3-1'), challenger first.")

        actor_id = await self.user_system.resolve_player_id(ctx.author)
        challenge = await self.challenge_system.resolve_challenge(challenge_id, actor_id, *parsed)

        challenger = await self.user_system.get_player(challenge['challenger_id'])
        challengee = await self.user_system.get_player(challenge['challengee_id'])
        await ctx.send(embed=EmbedTemplates.challenge_embed(challenge, challenger, challengee))

        exchange = challenge.get('rank_exchange')
        if exchange:
            embed = EmbedTemplates.rank_exchange_embed(exchange, challenger, challengee)
            await ctx.send(embed=embed)

    @commands.command(name='forfeit')
    async def forfeit(self, ctx, challenge_id: int):
        """
        Close one of your challenges without a score
        Usage: ?forfeit <challenge_id>
        """
        actor_id = await self.user_system.resolve_player_id(ctx.author)
        challenge = await self.challenge_system.forfeit_challenge(challenge_id, actor_id)

        embed = EmbedTemplates.success_embed(
            "Challenge Forfeited",
            f"Challenge #{challenge['challenge_id']} was closed with no contest."
        )
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['confirmation'])

    @commands.command(name='challenges', aliases=['mychallenges'])
    async def challenges(self, ctx, target: Optional[discord.Member] = None):
        """
        List recent challenges of a player
        Usage: ?challenges [@user]
        """
        target = target or ctx.author
        player_id = await self.user_system.resolve_player_id(target)

        challenges = await self.challenge_system.get_player_challenges(
            player_id, limit=BOT_LIMITS['max_challenges_listed']
        )
        names = await self._player_names(challenges)

        embed = EmbedTemplates.challenge_list_embed(challenges, names, f"{target.display_name}'s Challenges")
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['info'])

    @commands.command(name='help')
    async def help_command(self, ctx):
        """Show available commands"""
        await ctx.send(embed=EmbedTemplates.help_embed(self.bot.command_prefix))
