import random

from ecoflow.models import Edge, Node
from ecoflow.rates import has_valid_range, resolve_quantity


def test_fixed_rate_is_returned_unchanged(rng):
    spec = Node("s", "source", rate=7)

    assert resolve_quantity(spec, rng) == 7


def test_random_range_stays_within_inclusive_bounds(rng):
    spec = Node("s", "source", rate=5, rate_max=10, is_random=True)

    samples = [resolve_quantity(spec, rng) for _ in range(500)]

    assert all(5 <= s <= 10 for s in samples)
    assert all(float(s).is_integer() for s in samples)
    # Both ends of the range are reachable
    assert min(samples) == 5
    assert max(samples) == 10


def test_inverted_range_collapses_to_fixed_rate(rng):
    spec = Edge("e", "a", "b", rate=8, rate_max=3, is_random=True)

    assert not has_valid_range(spec)
    assert resolve_quantity(spec, rng) == 8


def test_range_without_random_flag_is_fixed(rng):
    spec = Edge("e", "a", "b", rate=2, rate_max=9)

    assert resolve_quantity(spec, rng) == 2


def test_missing_max_is_fixed(rng):
    spec = Edge("e", "a", "b", rate=4, is_random=True)

    assert resolve_quantity(spec, rng) == 4


def test_degenerate_range_returns_the_single_value(rng):
    spec = Edge("e", "a", "b", rate=3, rate_max=3, is_random=True)

    assert {resolve_quantity(spec, rng) for _ in range(20)} == {3}


def test_same_seed_gives_same_samples():
    spec = Node("s", "source", rate=0, rate_max=100, is_random=True)
    first = [resolve_quantity(spec, random.Random(7)) for _ in range(3)]
    second = [resolve_quantity(spec, random.Random(7)) for _ in range(3)]

    assert first == second
