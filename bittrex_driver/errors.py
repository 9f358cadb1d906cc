"""Error taxonomy for the Bittrex driver.

Everything raised below the facade derives from ``AdapterError`` so the facade
can convert it into an error notification plus an absent result.
"""
from __future__ import annotations
from typing import Any


class AdapterError(Exception):
    """Base class for every failure the driver reports to the host."""


class TransportError(AdapterError):
    """Network or HTTP-level failure."""


class ProtocolError(AdapterError):
    """The exchange answered, but not with a usable success envelope."""


class ParseError(AdapterError):
    """A field of an exchange payload is missing or malformed."""

    def __init__(self, field: str, reason: str, raw: Any = None) -> None:
        self.field = field
        self.reason = reason
        self.raw = raw
        super().__init__(f"{field}: {reason} (raw={raw!r})")


class LockTimeout(AdapterError):
    """The request lock could not be acquired within the configured window."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"request lock not acquired within {timeout:.1f}s")


class InvalidArgument(AdapterError):
    """A value supplied by the host is not a usable number."""

    def __init__(self, value: Any, reason: str = "expected a number") -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {value!r}")
