"""
Latency policies for the mock workspace engine.

A policy is sampled once per call; the sampled delay elapses before the
call's result becomes available.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass


class LatencyPolicy(ABC):
    """Source of per-call simulated delays."""

    @abstractmethod
    def sample(self, rng: random.Random) -> float:
        """Return the delay for one call, in seconds (>= 0)."""
        pass


@dataclass(frozen=True)
class FixedLatency(LatencyPolicy):
    """Every call is delayed by the same duration."""
    seconds: float = 0.0

    def __post_init__(self):
        if self.seconds < 0:
            raise ValueError(f"Latency must be non-negative, got {self.seconds}")

    @classmethod
    def from_ms(cls, ms: float) -> "FixedLatency":
        return cls(seconds=ms / 1000.0)

    def sample(self, rng: random.Random) -> float:
        return self.seconds


@dataclass(frozen=True)
class UniformLatency(LatencyPolicy):
    """
    Delay drawn uniformly from the half-open millisecond range [min_ms, max_ms).

    Whole milliseconds are drawn, so the default range 0..1 always yields
    zero delay.
    """
    min_ms: int = 0
    max_ms: int = 1

    def __post_init__(self):
        if self.min_ms < 0 or self.max_ms <= self.min_ms:
            raise ValueError(
                f"Invalid latency range {self.min_ms}..{self.max_ms} ms"
            )

    def sample(self, rng: random.Random) -> float:
        return rng.randrange(self.min_ms, self.max_ms) / 1000.0


NO_LATENCY = FixedLatency(0.0)
