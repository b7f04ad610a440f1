"""
Utils Package
Utility functions and helpers for LadderBot
"""

from .embeds import EmbedTemplates
from .validators import Validators
from .exceptions import (
    LadderError, BusinessRuleViolation, InvalidScore, Unauthorized,
    NotFound, InvalidState, PersistenceError
)

__all__ = [
    'EmbedTemplates', 'Validators',
    'LadderError', 'BusinessRuleViolation', 'InvalidScore', 'Unauthorized',
    'NotFound', 'InvalidState', 'PersistenceError'
]
