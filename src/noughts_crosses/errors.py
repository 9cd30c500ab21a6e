"""
Exceptions raised by the game core.

Everything derives from GameError. The value-shaped errors also derive from
ValueError so callers that only know about ValueError keep working.
"""


class GameError(Exception):
    """Base class for all game errors."""


# PUBLIC_INTERFACE
class ValidationError(GameError, ValueError):
    """A coordinate or marker outside the defined domain."""


# PUBLIC_INTERFACE
class RangeError(ValidationError):
    """Row or column is not an integer in [0, 2]."""


# PUBLIC_INTERFACE
class OccupiedError(GameError, ValueError):
    """Move targets a cell that already holds a marker."""


# PUBLIC_INTERFACE
class IllegalStateError(GameError):
    """Operation is not permitted in the current phase."""


# PUBLIC_INTERFACE
class ConfigurationError(GameError, ValueError):
    """Session cannot be started with the given players."""
