from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
import time

from gotestgate.invariants import never


class DeadlineClock(Protocol):
    def get_mark(self) -> int:
        """Return the current monotonic mark in nanoseconds."""


@dataclass(frozen=True)
class MonotonicClock:
    """Default wall-clock implementation used when no clock is injected."""

    def get_mark(self) -> int:
        return time.monotonic_ns()


_SYSTEM_CLOCK = MonotonicClock()


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int
    timeout_ns: int = 0
    clock: DeadlineClock = _SYSTEM_CLOCK

    @classmethod
    def from_timeout_ticks(
        cls,
        ticks: int,
        tick_ns: int,
        *,
        clock: DeadlineClock = _SYSTEM_CLOCK,
    ) -> "Deadline":
        ticks_value = int(ticks)
        tick_ns_value = int(tick_ns)
        if ticks_value < 0:
            never("invalid timeout ticks", ticks=ticks)
        if tick_ns_value <= 0:
            never("invalid timeout tick_ns", tick_ns=tick_ns)
        total_ns = ticks_value * tick_ns_value
        return cls(
            deadline_ns=clock.get_mark() + total_ns,
            timeout_ns=total_ns,
            clock=clock,
        )

    @classmethod
    def from_timeout_ms(
        cls, milliseconds: int, *, clock: DeadlineClock = _SYSTEM_CLOCK
    ) -> "Deadline":
        return cls.from_timeout_ticks(milliseconds, 1_000_000, clock=clock)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ns / 1_000_000_000

    def remaining_ns(self) -> int:
        return max(0, self.deadline_ns - self.clock.get_mark())

    def remaining_seconds(self) -> float:
        return self.remaining_ns() / 1_000_000_000
