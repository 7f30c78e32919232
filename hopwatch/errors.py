# FILE: hopwatch/errors.py
# PURPOSE: Exception types raised by the measurement engine.
# ==============================================================================


class HopwatchError(Exception):
    """Base class for all hopwatch errors."""


class ConfigError(HopwatchError):
    pass


class ResolutionError(HopwatchError):
    """A target hostname could not be resolved to an address."""

    def __init__(self, host, reason=""):
        self.host = host
        msg = f"Could not resolve '{host}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NoTargetsError(HopwatchError):
    """Raised when not a single configured target can be monitored."""


class TransportError(HopwatchError):
    """The probe transport could not send a packet (usually missing privileges)."""
