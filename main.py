#!/usr/bin/env python3
"""
LadderBot - Challenge Ladder Bot
Main entry point and bot initialization
"""
from dotenv import load_dotenv
load_dotenv()
import asyncio
import discord
from discord.ext import commands
import logging

from config import BOT_CONFIG, CLEANUP_TIMINGS, LadderSettings
from database.models import Database
from systems.player_locks import PlayerLocks
from systems.ranking_system import RankingSystem
from systems.challenge_system import ChallengeSystem
from systems.user_system import UserSystem
from commands.ladder_commands import setup_ladder_commands
from commands.admin_commands import setup_admin_commands
from utils.embeds import EmbedTemplates
from utils.exceptions import LadderError, PersistenceError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('ladderbot.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger('LadderBot')

class LadderBot(commands.Bot):
    def __init__(self, settings: LadderSettings = None, database: Database = None):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix=BOT_CONFIG['command_prefix'],
            intents=intents,
            help_command=None  # Replaced by LadderCommands.help_command
        )

        # Initialize systems once so every cog shares the same player locks
        self.settings = settings or LadderSettings.from_env()
        self.db = database or Database()
        self.ranking_system = RankingSystem(self.db, self.settings, PlayerLocks())
        self.challenge_system = ChallengeSystem(self.db, self.ranking_system, self.settings)
        self.user_system = UserSystem(self.db, self.ranking_system)

    async def setup_hook(self):
        """Prepare the database and load command modules before connecting"""
        await self.db.initialize()
        logger.info('Database initialized')

        repaired = await self.ranking_system.repair_sentinel_ranks()
        if repaired:
            logger.warning(f'Startup ladder check: repaired {repaired} player rank(s)')

        await self.setup_commands()

    async def setup_commands(self):
        """Load all command modules"""
        logger.info('Loading command modules...')

        await setup_ladder_commands(self)
        await setup_admin_commands(self)

        logger.info('All command modules loaded')

    async def on_ready(self):
        """Called when the bot is ready and connected to Discord"""
        logger.info(f'{self.user} has connected to Discord!')
        logger.info(f'Bot is in {len(self.guilds)} guilds')
        logger.info(
            f'Ladder rules: anytime={self.settings.challenge_anytime}, '
            f'back delay={self.settings.challenge_back_delay_hours}h, '
            f'policy={self.settings.rank_exchange_policy}, tiers={self.settings.tier_sizes}'
        )

        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name="the ladder | ?help"
            )
        )

    async def on_command_error(self, ctx, error):
        """Report ladder errors as embeds and command usage errors as short notices"""
        if isinstance(error, commands.CommandInvokeError) and isinstance(error.original, LadderError):
            original = error.original
            if isinstance(original, PersistenceError):
                logger.error(f'Store failure in command {ctx.command}: {original}', exc_info=original)
                embed = EmbedTemplates.error_embed("Storage Error", "The ladder could not be updated. Nothing was changed.")
            else:
                logger.info(f'Command {ctx.command} by {ctx.author} rejected: {original}')
                embed = EmbedTemplates.error_embed(type(original).__name__, str(original))
            await ctx.send(embed=embed, delete_after=CLEANUP_TIMINGS['error'])
            return

        usage_hint = f"Use `{self.command_prefix}help` for usage."
        if isinstance(error, commands.CommandNotFound):
            notice = f"Unknown command. {usage_hint}"
        elif isinstance(error, commands.MissingPermissions):
            notice = "Only administrators can use this command."
        elif isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            notice = f"{error} {usage_hint}"
        else:
            logger.error(f'Unhandled error in command {ctx.command}: {error}', exc_info=error)
            notice = "Something went wrong while handling that command."

        await ctx.send(f"❌ {notice}", delete_after=CLEANUP_TIMINGS['error'])

    async def on_message(self, message):
        """Process messages for commands"""
        # Ignore bot messages
        if message.author.bot:
            return

        await self.process_commands(message)

async def main():
    """Main function to start the bot"""
    bot = LadderBot()

    try:
        logger.info('Starting LadderBot...')
        await bot.start(BOT_CONFIG['bot_token'])

    except discord.LoginFailure:
        logger.error('Invalid bot token')
    except KeyboardInterrupt:
        logger.info('Bot shutdown requested')
    except Exception as e:
        logger.error(f'Unexpected error: {e}', exc_info=True)
    finally:
        if not bot.is_closed():
            await bot.close()
        logger.info('LadderBot shutdown complete')

if __name__ == '__main__':
    asyncio.run(main())
