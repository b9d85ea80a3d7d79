"""
utils/errors.py
NetProbe exception taxonomy.

Only InvalidSpec (and ConfigError at start-up) ever reach the user.
Probe-level conditions (timeout, refusal, short banner read) are recorded
as port states, never raised.
"""


class NetProbeError(Exception):
    """Base class for all NetProbe errors."""


class InvalidSpec(NetProbeError, ValueError):
    """Malformed target or port expression."""


class PortParseError(InvalidSpec):
    """Raised when port specification is invalid."""


class TargetParseError(InvalidSpec):
    """Raised when target specification is invalid."""


class ConfigError(NetProbeError, ValueError):
    """Invalid configuration value or unreadable config file."""


class ResolutionFailure(NetProbeError):
    """DNS lookup failed. Scans degrade to the raw target string."""

    def __init__(self, target: str, reason: str = ""):
        self.target = target
        self.reason = reason
        msg = f"Could not resolve {target!r}"
        super().__init__(f"{msg}: {reason}" if reason else msg)


__all__ = [
    "NetProbeError", "InvalidSpec", "PortParseError", "TargetParseError",
    "ConfigError", "ResolutionFailure",
]
