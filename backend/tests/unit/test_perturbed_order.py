"""
Unit tests for perturbed_order: bounded jitter over the natural start order.
"""

from __future__ import annotations

import random

from simulator.scheduler import perturbed_order


def test_zero_variation_keeps_natural_order() -> None:
    competitors = [1, 2, 3, 10, 20]
    assert perturbed_order(competitors, 0, random.Random(1)) == competitors


def test_result_is_a_permutation() -> None:
    competitors = list(range(1, 101))
    order = perturbed_order(competitors, 20, random.Random(5))
    assert sorted(order) == competitors


def test_same_seed_same_order() -> None:
    competitors = list(range(1, 51))
    assert perturbed_order(competitors, 10, random.Random(42)) == perturbed_order(
        competitors, 10, random.Random(42)
    )


def test_displacement_is_bounded() -> None:
    # keys differ from natural index by < V, so a competitor can only be overtaken
    # by ones within 2V positions
    competitors = list(range(200))
    variation = 3
    order = perturbed_order(competitors, variation, random.Random(9))
    for position, competitor in enumerate(order):
        assert abs(position - competitor) <= 2 * variation
