"""Random sources and distributions for synthetic workloads."""

from .distributions import (
    BernoulliDistribution,
    Distribution,
    RandomSource,
    UniformDistribution,
    UniformIntDistribution,
)

__all__ = [
    "RandomSource",
    "Distribution",
    "UniformDistribution",
    "UniformIntDistribution",
    "BernoulliDistribution",
]
