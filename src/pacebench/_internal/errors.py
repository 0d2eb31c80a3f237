"""Custom exception hierarchy for pacebench."""

from __future__ import annotations


class PaceBenchError(Exception):
    """Base exception for all pacebench errors.

    Every error raised by the harness inherits from this class, so a host
    process can catch any pacebench-specific failure with a single except
    clause.
    """


class FormatError(PaceBenchError):
    """Raised when a pace descriptor is malformed.

    Fatal at startup: it is raised before any traffic is generated.

    Examples:
        - A non-numeric rate or duration (``"abc"``, ``"100:x"``).
        - A token with more than two colon-separated fields (``"1:2:3"``).
        - A zero rate or zero duration.
    """

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"invalid pace token {token!r}: {reason}")


class ConfigurationError(PaceBenchError):
    """Raised when configuration is invalid or missing.

    Examples:
        - ``max_throughput_expected`` is not positive.
        - The sink URL is not set.
        - An environment variable has an invalid value.
    """


class TransportError(PaceBenchError):
    """Raised by a transport when a single send fails.

    Dispatchers recover from it locally: the failed send is reported as a
    result without an acknowledgement, and the phase keeps running.
    """


class ProtocolError(PaceBenchError):
    """Raised when the control-signal state machine is violated.

    Example: emitting a second end signal in the same run.
    """


class EngineError(PaceBenchError):
    """Raised when the benchmark run loop fails unexpectedly."""
