"""
Random draws for synthetic workloads.

Every distribution samples from an injectable random source so that tests
can script the exact values drawn and force either side of a branch.
The default source is the ``random`` module itself.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol


class RandomSource(Protocol):
    """Anything exposing ``random() -> float`` in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float: ...


@dataclass
class Distribution(ABC):
    """Base class for distributions drawn from a pluggable random source."""

    rng: RandomSource = field(default=random, repr=False, compare=False, kw_only=True)

    @abstractmethod
    def sample(self) -> Any:
        """Draw a single sample from the distribution."""
        pass


@dataclass
class UniformDistribution(Distribution):
    """Continuous uniform distribution over [low, high)."""

    low: float = 0.0
    high: float = 1.0

    def sample(self) -> float:
        return self.low + (self.high - self.low) * self.rng.random()


@dataclass
class UniformIntDistribution(Distribution):
    """
    Discrete uniform distribution over the integers in [low, high).

    Computed as ``floor(r * (high - low)) + low`` so a source fixed at 0.0
    yields ``low`` and values close to 1.0 yield ``high - 1``.
    """

    low: int = 0
    high: int = 1

    def __post_init__(self):
        if self.high <= self.low:
            raise ValueError(f"high must be greater than low, got [{self.low}, {self.high})")

    def sample(self) -> int:
        return self.low + math.floor(self.rng.random() * (self.high - self.low))


@dataclass
class BernoulliDistribution(Distribution):
    """
    Bernoulli distribution - single binary outcome.

    Good for: failure injection. ``sample_bool`` is True when the drawn
    value is strictly below ``p``.
    """

    p: float = 0.5

    def __post_init__(self):
        if not 0.0 <= self.p <= 1.0:
            raise ValueError(f"p must be in [0, 1], got {self.p}")

    def sample(self) -> float:
        return 1.0 if self.sample_bool() else 0.0

    def sample_bool(self) -> bool:
        """Return boolean outcome."""
        return self.rng.random() < self.p
