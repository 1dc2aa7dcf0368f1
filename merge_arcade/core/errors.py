"""
Errors
======

Exception types raised by the simulation layer.

Only configuration problems and invalid tier lookups raise. Over-eager input
(fire while locked, drag after game over) and recovered physics anomalies are
handled silently.
"""


class MergeArcadeError(Exception):
    """Base class for all merge_arcade errors."""


class ConfigError(MergeArcadeError, ValueError):
    """Configuration is malformed or violates the tier table invariants."""


class OutOfRangeError(MergeArcadeError, IndexError):
    """Tier index outside [0, N-1]."""
