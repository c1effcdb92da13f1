"""
Errors raised by DriveCore.

Configuration objects validate themselves on construction and raise
ConfigurationError, so nothing is ever built from an invalid setup.
"""


class ConfigurationError(ValueError):
    """Raised when a configuration dataclass holds invalid values."""
