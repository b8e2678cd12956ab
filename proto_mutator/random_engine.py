#!/usr/bin/env python3
"""
Random Engine for the Protobuf Mutator

This module provides the deterministic pseudo-random source used by every
mutation strategy. Two engines seeded with the same value produce the same
sequence, which keeps fuzzing findings reproducible.
"""

import random
import logging
from typing import MutableSequence, Optional, Sequence, TypeVar

from .utils.common import DEFAULT_SEED

logger = logging.getLogger(__name__)

T = TypeVar('T')

UINT32_MASK = 0xFFFFFFFF


class RandomEngine:
    """Seeded random source with the primitives the mutators need."""

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize the engine.

        Args:
            seed: Initial seed; DEFAULT_SEED is used when omitted so the
                stream is still deterministic.
        """
        self._random = random.Random()
        self.seed(DEFAULT_SEED if seed is None else seed)

    def seed(self, value: int) -> None:
        """Reset the stream. The value is reduced to 32 bits."""
        self._seed = int(value) & UINT32_MASK
        self._random.seed(self._seed)
        logger.debug(f"Random engine seeded with {self._seed}")

    @property
    def current_seed(self) -> int:
        """The last seed applied to the engine."""
        return self._seed

    def uniform_int(self, low: int, high: int) -> int:
        """Uniform integer in the inclusive range [low, high]."""
        assert low <= high, f"empty range [{low}, {high}]"
        return self._random.randint(low, high)

    def random_index(self, count: int) -> int:
        """Uniform index in [0, count)."""
        assert count > 0, "no index to choose from"
        return self._random.randrange(count)

    def uniform_float(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def bool_with_probability(self, probability: float) -> bool:
        """True with the given probability."""
        return self._random.random() < probability

    def random_bool(self) -> bool:
        return self.bool_with_probability(0.5)

    def one_in(self, count: int) -> bool:
        """True with probability 1/count."""
        return self.random_index(count) == 0

    def pick_one_of(self, sequence: Sequence[T]) -> T:
        """Uniformly chosen element; callers never pass an empty sequence."""
        assert len(sequence) > 0, "pick_one_of called with an empty sequence"
        return sequence[self._random.randrange(len(sequence))]

    def random_bytes(self, count: int) -> bytes:
        if count <= 0:
            return b""
        return self._random.randbytes(count)

    def shuffle(self, items: MutableSequence[T]) -> None:
        """Shuffle in place."""
        self._random.shuffle(items)

    def random_seed(self) -> int:
        """A fresh unsigned 32-bit value for callbacks that need their own RNG."""
        return self._random.getrandbits(32)

