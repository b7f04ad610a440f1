"""
Database Package
Provides the ladder record store, transactions and query utilities for LadderBot
"""

from .models import Database
from .queries import DatabaseQueries

__all__ = ['Database', 'DatabaseQueries']
