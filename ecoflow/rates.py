import math
import random
from typing import Optional, Protocol


class QuantitySpec(Protocol):
    rate: float
    rate_max: Optional[float]
    is_random: bool


def has_valid_range(spec: QuantitySpec) -> bool:
    """Return True when ``spec`` describes a usable random range."""
    return bool(spec.is_random) and spec.rate_max is not None and spec.rate_max >= spec.rate


def resolve_quantity(spec: QuantitySpec, rng: random.Random) -> float:
    """Return the effective amount for one use of ``spec``.

    A valid random range yields an integer step drawn uniformly from
    ``[rate, rate_max]`` inclusive; anything else collapses to ``rate``.
    Every call draws a fresh sample.
    """
    if has_valid_range(spec):
        span = spec.rate_max - spec.rate + 1
        return math.floor(rng.random() * span) + spec.rate
    return spec.rate
