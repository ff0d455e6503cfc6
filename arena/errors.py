"""
Exceptions raised by the arena.

Ordinary algorithmic outcomes (no beneficial swap, no strategy adopted,
fewer slots allocated than requested) are never reported as errors.
"""


class ArenaError(Exception):
    """Base class for all arena errors."""


class ConfigurationError(ArenaError, ValueError):
    """Raised at day start when the configuration cannot be simulated."""


class SinkWriteError(ArenaError):
    """Raised when appending a row to a metrics sink fails."""


class InvalidTradeError(ArenaError):
    """Raised when a swap would break slot conservation or ownership."""
