"""Defines common Value Objects used across the client.

These objects represent simple values or concepts like signatures,
encoded payloads and rate limit policies, ensuring consistency and type safety.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import NewType

from crptapi.domain.errors import InvalidConfigurationError

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
Signature = NewType("Signature", str)            # Detached signature of the product document
EncodedDocument = NewType("EncodedDocument", str) # Base64 text of the serialized document
ResponseBody = NewType("ResponseBody", str)       # Raw body returned by the registry


# === Rate Limiting Context ===

class TimeUnit(str, Enum):
    """Unit of time a rate limit window is expressed in."""

    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    def to_seconds(self, count: float = 1) -> float:
        """Converts ``count`` units into seconds."""
        return count * _UNIT_SECONDS[self]

    @classmethod
    def parse(cls, text: str) -> "TimeUnit":
        """Parses names like 'minute', 'mins', 's' or 'MINUTES'."""
        key = text.strip().lower()
        for unit, aliases in _UNIT_ALIASES.items():
            if key == unit.value or key in aliases:
                return unit
        raise InvalidConfigurationError(f"Unknown time unit: '{text}'")


_UNIT_SECONDS = {
    TimeUnit.MILLISECONDS: 0.001,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
    TimeUnit.HOURS: 3600.0,
    TimeUnit.DAYS: 86400.0,
}

_UNIT_ALIASES = {
    TimeUnit.MILLISECONDS: {"ms", "millisecond", "msec", "msecs"},
    TimeUnit.SECONDS: {"s", "sec", "secs", "second"},
    TimeUnit.MINUTES: {"m", "min", "mins", "minute"},
    TimeUnit.HOURS: {"h", "hr", "hrs", "hour"},
    TimeUnit.DAYS: {"d", "day"},
}

# "5 per minute", "5/minute", "100 per 2 hours"
_RATE_PATTERN = re.compile(
    r"^\s*(?P<capacity>-?\d+)\s*(?:per|/)\s*(?P<count>\d+(?:\.\d+)?)?\s*(?P<unit>[a-zA-Z]+)\s*$"
)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Value Object: at most ``capacity`` requests per ``window_seconds``."""

    capacity: int
    window_seconds: float

    def __post_init__(self):
        if self.capacity <= 0:
            raise InvalidConfigurationError(f"Request limit must be positive, got {self.capacity}")
        if self.window_seconds <= 0:
            raise InvalidConfigurationError(f"Time window must be positive, got {self.window_seconds}")

    @classmethod
    def per(cls, time_unit: TimeUnit, request_limit: int) -> "RateLimitPolicy":
        """Builds a policy of ``request_limit`` requests per one ``time_unit``."""
        return cls(capacity=request_limit, window_seconds=time_unit.to_seconds(1))

    @classmethod
    def parse(cls, text: str) -> "RateLimitPolicy":
        """Parses a textual policy such as '5 per minute' or '10/second'."""
        match = _RATE_PATTERN.match(text or "")
        if not match:
            raise InvalidConfigurationError(
                f"Cannot parse rate limit '{text}'. Expected e.g. '5 per minute'."
            )
        count = float(match.group("count") or 1)
        unit = TimeUnit.parse(match.group("unit"))
        return cls(capacity=int(match.group("capacity")), window_seconds=unit.to_seconds(count))

    def describe(self) -> str:
        return f"{self.capacity} per {self.window_seconds:g}s"
