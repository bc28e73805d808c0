"""Closed set of time units, each with a fixed multiplier to microseconds."""
from __future__ import annotations
from enum import Enum
from typing import Dict

from microbench.core.exceptions import InvalidTimeUnit


class TimeUnit(str, Enum):
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"

    @property
    def multiplier(self) -> float:
        """Number of microseconds in one of this unit"""
        return _MULTIPLIERS[self]

    @classmethod
    def resolve(cls, unit: "str | TimeUnit") -> "TimeUnit":
        if isinstance(unit, TimeUnit):
            return unit
        key = str(unit).strip().lower() if unit is not None else ""
        try:
            return _ALIASES[key]
        except KeyError:
            raise InvalidTimeUnit(str(unit), sorted(u.value for u in cls))

    @classmethod
    def is_unit(cls, unit: str) -> bool:
        return str(unit).strip().lower() in _ALIASES

    def to_microseconds(self, value: float) -> float:
        return value * self.multiplier

    def from_microseconds(self, value: float) -> float:
        return value / self.multiplier


def convert(value: float, from_unit: "str | TimeUnit", to_unit: "str | TimeUnit") -> float:
    """Convert ``value`` between two units"""
    micro = TimeUnit.resolve(from_unit).to_microseconds(value)
    return TimeUnit.resolve(to_unit).from_microseconds(micro)


_MULTIPLIERS: Dict[TimeUnit, float] = {
    TimeUnit.MICROSECONDS: 1.0,
    TimeUnit.MILLISECONDS: 1_000.0,
    TimeUnit.SECONDS: 1_000_000.0,
    TimeUnit.MINUTES: 60_000_000.0,
    TimeUnit.HOURS: 3_600_000_000.0,
}

_ALIASES: Dict[str, TimeUnit] = {
    "microseconds": TimeUnit.MICROSECONDS,
    "microsecond": TimeUnit.MICROSECONDS,
    "us": TimeUnit.MICROSECONDS,
    "μs": TimeUnit.MICROSECONDS,
    "milliseconds": TimeUnit.MILLISECONDS,
    "millisecond": TimeUnit.MILLISECONDS,
    "ms": TimeUnit.MILLISECONDS,
    "seconds": TimeUnit.SECONDS,
    "second": TimeUnit.SECONDS,
    "s": TimeUnit.SECONDS,
    "minutes": TimeUnit.MINUTES,
    "minute": TimeUnit.MINUTES,
    "m": TimeUnit.MINUTES,
    "hours": TimeUnit.HOURS,
    "hour": TimeUnit.HOURS,
    "h": TimeUnit.HOURS,
}
