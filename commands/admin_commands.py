"""
Admin Commands
Administrative ladder corrections and maintenance
"""

import discord
from discord.ext import commands
import logging
from utils.embeds import EmbedTemplates
from config import CLEANUP_TIMINGS

logger = logging.getLogger('LadderBot.AdminCommands')

async def setup_admin_commands(bot):
    """Setup admin commands for the bot"""
    await bot.add_cog(AdminCommands(bot))

class AdminCommands(commands.Cog):
    def __init__(self, bot):
        self.bot = bot
        self.user_system = bot.user_system
        self.challenge_system = bot.challenge_system
        self.ranking_system = bot.ranking_system

    @commands.command(name='swapranks', aliases=['swap'])
    @commands.has_permissions(administrator=True)
    async def swap_ranks(self, ctx, first: discord.Member, second: discord.Member):
        """
        Exchange two players' ranks
        Usage: ?swapranks @player1 @player2
        """
        player_a_id = await self.user_system.resolve_player_id(first)
        player_b_id = await self.user_system.resolve_player_id(second)

        exchange = await self.ranking_system.exchange_ranks(player_a_id, player_b_id)
        await self.bot.db.log_action(
            'admin_rank_swap', ctx.author.id, f"Exchange {exchange['exchange_id']}"
        )
        logger.info(f"{ctx.author} swapped ranks of {first} and {second}")

        player_a = await self.user_system.get_player(player_a_id)
        player_b = await self.user_system.get_player(player_b_id)
        await ctx.send(embed=EmbedTemplates.rank_exchange_embed(exchange, player_a, player_b))

    @commands.command(name='forfeitstale', aliases=['cleanup'])
    @commands.has_permissions(administrator=True)
    async def forfeit_stale(self, ctx):
        """
        Forfeit pending challenges older than the configured limit
        Usage: ?forfeitstale
        """
        if not self.challenge_system.settings.challenge_forfeit_hours:
            embed = EmbedTemplates.warning_embed(
                "Not Configured",
                "Set CHALLENGE_FORFEIT_HOURS to enable stale challenge forfeits."
            )
            await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['error'])
            return

        count = await self.challenge_system.forfeit_stale_challenges()
        embed = EmbedTemplates.success_embed("Cleanup Complete", f"Forfeited {count} stale challenge(s).")
        await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['confirmation'])
