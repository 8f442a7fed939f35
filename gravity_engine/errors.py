"""Exceptions raised by the gravity engine."""


class GravityEngineError(Exception):
    """Base class for all gravity engine errors."""


class ConfigurationError(GravityEngineError):
    """Raised when the arena or simulation parameters cannot be used.

    Covers a missing or ambiguous target attractor, unknown attractor ids and
    invalid configuration values. Collisions and escapes are outcomes, never
    errors.
    """
