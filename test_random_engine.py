#!/usr/bin/env python3
"""
Tests for the random engine: determinism, ranges and fatal misuse.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from proto_mutator.random_engine import RandomEngine


def draw_sequence(engine, count=50):
    return [engine.uniform_int(0, 1_000_000) for _ in range(count)]


def test_same_seed_same_stream():
    assert draw_sequence(RandomEngine(7)) == draw_sequence(RandomEngine(7))


def test_different_seeds_differ():
    assert draw_sequence(RandomEngine(7)) != draw_sequence(RandomEngine(8))


def test_unseeded_engine_is_deterministic():
    assert draw_sequence(RandomEngine()) == draw_sequence(RandomEngine())


def test_reseeding_restarts_stream():
    engine = RandomEngine(3)
    first = draw_sequence(engine)
    engine.seed(3)
    assert draw_sequence(engine) == first


def test_seed_reduced_to_32_bits():
    engine = RandomEngine(2**32 + 5)
    assert engine.current_seed == 5
    assert draw_sequence(engine) == draw_sequence(RandomEngine(5))


@given(st.integers(min_value=-1000, max_value=1000), st.integers(min_value=0, max_value=1000),
       st.integers(min_value=0, max_value=2**32 - 1))
def test_uniform_int_inclusive_range(low, span, seed):
    engine = RandomEngine(seed)
    value = engine.uniform_int(low, low + span)
    assert low <= value <= low + span


@given(st.integers(min_value=1, max_value=10_000), st.integers(min_value=0, max_value=2**32 - 1))
def test_random_index_in_range(count, seed):
    assert 0 <= RandomEngine(seed).random_index(count) < count


def test_uniform_int_single_value():
    assert RandomEngine(1).uniform_int(4, 4) == 4


def test_empty_range_is_fatal():
    with pytest.raises(AssertionError):
        RandomEngine(1).uniform_int(5, 4)
    with pytest.raises(AssertionError):
        RandomEngine(1).random_index(0)


def test_pick_one_of_empty_is_fatal():
    with pytest.raises(AssertionError):
        RandomEngine(1).pick_one_of([])


def test_pick_one_of_returns_member():
    engine = RandomEngine(11)
    items = ["a", "b", "c"]
    picks = {engine.pick_one_of(items) for _ in range(200)}
    assert picks == set(items)


def test_one_in_one_is_always_true():
    engine = RandomEngine(2)
    assert all(engine.one_in(1) for _ in range(100))


def test_bool_with_probability_extremes():
    engine = RandomEngine(2)
    assert not any(engine.bool_with_probability(0.0) for _ in range(100))
    assert all(engine.bool_with_probability(1.0) for _ in range(100))


def test_random_bytes_length():
    engine = RandomEngine(9)
    assert engine.random_bytes(0) == b""
    assert len(engine.random_bytes(17)) == 17


def test_shuffle_keeps_elements():
    items = list(range(20))
    RandomEngine(4).shuffle(items)
    assert sorted(items) == list(range(20))


def test_random_seed_is_uint32():
    engine = RandomEngine(4)
    for _ in range(100):
        assert 0 <= engine.random_seed() < 2**32
