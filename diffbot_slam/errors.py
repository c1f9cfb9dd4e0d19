"""
Exception hierarchy for diffbot_slam.

Only configuration problems are meant to stop the program. Numerical trouble
inside the filter is handled where it happens (the offending measurement is
rejected) and never surfaces as an exception.
"""


class DiffBotSlamError(Exception):
    """Base class for all package errors."""


class ConfigurationError(DiffBotSlamError, ValueError):
    """Raised at startup when a parameter is missing, zero or malformed."""


class NonHolonomicTwistError(DiffBotSlamError, ValueError):
    """Raised when a differential-drive twist carries a lateral velocity."""
