"""
Ladder Exceptions
Error kinds raised by the challenge lifecycle and rank exchange
"""


class LadderError(Exception):
    """Base exception for ladder operation errors"""
    pass


class BusinessRuleViolation(LadderError):
    """Raised when a challenge request fails an eligibility gate"""
    pass


class InvalidScore(LadderError):
    """Raised when a reported score is not a valid set result"""
    pass


class Unauthorized(LadderError):
    """Raised when the acting player may not perform the action on this challenge"""
    pass


class NotFound(LadderError):
    """Raised when a referenced player or challenge does not exist"""
    pass


class InvalidState(LadderError):
    """Raised when a challenge is not in the state the action requires"""
    pass


class PersistenceError(LadderError):
    """Raised when the record store fails; the surrounding transaction has been rolled back"""
    pass
