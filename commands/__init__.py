"""
Commands Package
Discord command handlers for LadderBot
"""

from .ladder_commands import setup_ladder_commands
from .admin_commands import setup_admin_commands

__all__ = ['setup_ladder_commands', 'setup_admin_commands']
