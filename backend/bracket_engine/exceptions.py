"""
Bracket engine error taxonomy.

Every engine call validates before mutating, so any of these errors means
the event's graph was left untouched.
"""


class BracketEngineError(Exception):
    """Base class for bracket engine failures"""

    pass


class InvalidInput(BracketEngineError):
    """Raised for malformed requests: too few teams, equal scores, empty slots"""

    pass


class IllegalStateTransition(BracketEngineError):
    """Raised when the graph's current state forbids the requested transition"""

    pass


class NotFound(BracketEngineError):
    """Raised when a referenced event, team or match does not exist"""

    pass
