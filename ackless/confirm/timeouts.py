"""Latency-scaled wait budgets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ackless.config import EngineSettings
from ackless.world.state import WorldState


def compute_budget(measured_latency_ms: int, minimum_ms: int, multiplier: int, padding_ms: int = 0) -> int:
    """Return ``max(minimum_ms, latency * multiplier + padding_ms)``.

    Latency is clamped to zero first, so an unavailable or bogus sample never
    shrinks the wait below ``minimum_ms``.
    """

    latency = max(0, int(measured_latency_ms))
    return max(int(minimum_ms), latency * int(multiplier) + int(padding_ms))


@dataclass(frozen=True)
class TimeoutBudget:
    minimum_ms: int
    latency_multiplier: int = 2
    padding_ms: int = 0

    def __post_init__(self) -> None:
        if self.minimum_ms < 0 or self.latency_multiplier < 0 or self.padding_ms < 0:
            raise ValueError("Timeout budget components must be non-negative")

    def effective_ms(self, measured_latency_ms: int) -> int:
        return compute_budget(measured_latency_ms, self.minimum_ms, self.latency_multiplier, self.padding_ms)

    @classmethod
    def fixed(cls, duration_ms: int) -> "TimeoutBudget":
        """A budget that ignores latency entirely."""
        return cls(minimum_ms=duration_ms, latency_multiplier=0)


@dataclass
class LatencySource:
    """Resolves the latency sample used for budgets.

    While the game is not ready the reported ping is meaningless, so the
    configured fallback is used instead.
    """

    settings: EngineSettings
    world: Optional[WorldState] = None
    reader: Optional[Callable[[], int]] = None

    def __call__(self) -> int:
        if self.reader is not None:
            return max(0, int(self.reader()))
        if self.world is None or not self.world.game_ready():
            return int(self.settings.fallback_latency_ms)
        return max(0, int(self.world.latency_ms()))
