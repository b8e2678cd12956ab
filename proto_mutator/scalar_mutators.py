#!/usr/bin/env python3
"""
Scalar Mutators for the Protobuf Mutator

This module provides the default mutation strategy for every primitive
field kind. Each strategy maps an old value (plus a size increase hint where
growth is possible) to a new value that still fits the declared type.
Subclass ScalarMutators to replace any single strategy.
"""

import math
import struct
from typing import List

from .random_engine import RandomEngine
from .utils.common import (
    BOUNDARY_PROBABILITY,
    LARGE_HINT_BOUNDARY_PROBABILITY,
    LARGE_SIZE_HINT,
)

FLOAT_BIT_FLIP_PROBABILITY = 0.5

# Payload bits carried by a UTF-8 sequence of 1, 2, 3 and 4 bytes
UTF8_PAYLOAD_BITS = (7, 11, 16, 21)

# Code point ranges by UTF-8 width
UTF8_RANGES = (
    (0x0, 0x7F),
    (0x80, 0x7FF),
    (0x800, 0xFFFF),
    (0x10000, 0x10FFFF),
)

MAX_CODE_POINT = 0x10FFFF
SURROGATE_LOW = 0xD800
SURROGATE_HIGH = 0xDFFF


def to_unsigned(value: int, bits: int) -> int:
    """Two's complement bit pattern of value in the given width."""
    return value & ((1 << bits) - 1)


def to_signed(raw: int, bits: int) -> int:
    """Signed integer for a bit pattern of the given width."""
    if raw & (1 << (bits - 1)):
        return raw - (1 << bits)
    return raw


def integer_limits(bits: int, signed: bool):
    """(min, max) representable in the given width."""
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


def to_float32(value: float) -> float:
    """Round to single precision; out-of-range values saturate to infinity."""
    try:
        return struct.unpack('<f', struct.pack('<f', value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def utf8_width(code_point: int) -> int:
    """Number of bytes in the UTF-8 encoding of a code point."""
    if code_point < 0x80:
        return 1
    if code_point < 0x800:
        return 2
    if code_point < 0x10000:
        return 3
    return 4


def fix_code_point(code_point: int) -> int:
    """Fold a value into a Unicode scalar value (no surrogates, <= U+10FFFF)."""
    if code_point > MAX_CODE_POINT:
        code_point &= 0xFFFFF
    if SURROGATE_LOW <= code_point <= SURROGATE_HIGH:
        code_point -= 0x800
    return code_point


class ScalarMutators:
    """Default mutation strategies for primitive field values."""

    def __init__(self, random_engine: RandomEngine):
        """
        Initialize the strategy bundle.

        Args:
            random_engine: Engine supplying all randomness
        """
        self.random = random_engine

    # Integers

    def mutate_int32(self, value: int, size_increase_hint: int = 0) -> int:
        return self._mutate_integer(value, 32, True, size_increase_hint)

    def mutate_int64(self, value: int, size_increase_hint: int = 0) -> int:
        return self._mutate_integer(value, 64, True, size_increase_hint)

    def mutate_uint32(self, value: int, size_increase_hint: int = 0) -> int:
        return self._mutate_integer(value, 32, False, size_increase_hint)

    def mutate_uint64(self, value: int, size_increase_hint: int = 0) -> int:
        return self._mutate_integer(value, 64, False, size_increase_hint)

    def _mutate_integer(self, value: int, bits: int, signed: bool,
                        size_increase_hint: int) -> int:
        """Flip one bit of the fixed-width value, or inject a boundary value."""
        if size_increase_hint >= LARGE_SIZE_HINT:
            boundary_probability = LARGE_HINT_BOUNDARY_PROBABILITY
        else:
            boundary_probability = BOUNDARY_PROBABILITY

        if self.random.bool_with_probability(boundary_probability):
            return self.random.pick_one_of(self._boundary_values(bits, signed))

        raw = to_unsigned(value, bits)
        raw ^= 1 << self.random.random_index(bits)
        return to_signed(raw, bits) if signed else raw

    def _boundary_values(self, bits: int, signed: bool) -> List[int]:
        low, high = integer_limits(bits, signed)
        if signed:
            return [0, 1, -1, low, high]
        return [0, 1, high]

    # Floating point

    def mutate_float(self, value: float, size_increase_hint: int = 0) -> float:
        if self.random.bool_with_probability(FLOAT_BIT_FLIP_PROBABILITY):
            raw = struct.unpack('<I', struct.pack('<f', to_float32(value)))[0]
            raw ^= 1 << self.random.random_index(32)
            return struct.unpack('<f', struct.pack('<I', raw))[0]
        return to_float32(self._perturb(value))

    def mutate_double(self, value: float, size_increase_hint: int = 0) -> float:
        if self.random.bool_with_probability(FLOAT_BIT_FLIP_PROBABILITY):
            raw = struct.unpack('<Q', struct.pack('<d', value))[0]
            raw ^= 1 << self.random.random_index(64)
            return struct.unpack('<d', struct.pack('<Q', raw))[0]
        return self._perturb(value)

    def _perturb(self, value: float) -> float:
        """Add a small random delta scaled to the magnitude of the value."""
        if math.isnan(value) or math.isinf(value):
            return value
        scale = abs(value) / 100 if value else 1.0
        return value + self.random.uniform_float(-1.0, 1.0) * scale

    # Bool and enum

    def mutate_bool(self, value: bool) -> bool:
        return not value

    def mutate_enum(self, index: int, item_count: int) -> int:
        """New index in [0, item_count), different from index when possible."""
        assert item_count > 0, "enum mutation on a type with no values"
        if item_count == 1:
            return 0
        return (index + 1 + self.random.random_index(item_count - 1)) % item_count

    # Byte strings

    def mutate_bytes(self, value: bytes, size_increase_hint: int = 0) -> bytes:
        """Flip, insert, delete or duplicate within a byte string."""
        data = bytearray(value)
        operation = self.random.pick_one_of(
            self._sequence_operations(len(data), size_increase_hint))

        if operation == "flip":
            index = self.random.random_index(len(data))
            data[index] ^= 1 << self.random.random_index(8)
        elif operation == "insert":
            index = self.random.uniform_int(0, len(data))
            data.insert(index, self.random.random_index(256))
        elif operation == "delete":
            del data[self.random.random_index(len(data))]
        else:  # duplicate
            start, end = self._pick_run(len(data), size_increase_hint)
            insert_at = self.random.uniform_int(0, len(data))
            data[insert_at:insert_at] = data[start:end]

        return bytes(data)

    # UTF-8 strings

    def mutate_utf8_string(self, value: str, size_increase_hint: int = 0) -> str:
        """
        Same operation set as mutate_bytes, applied to whole code points so
        the result always encodes to well-formed UTF-8.
        """
        code_points = [fix_code_point(ord(c)) for c in value]
        operation = self.random.pick_one_of(
            self._sequence_operations(len(code_points), size_increase_hint))

        if operation == "flip":
            index = self.random.random_index(len(code_points))
            code_points[index] = self._flip_code_point(code_points[index])
        elif operation == "insert":
            index = self.random.uniform_int(0, len(code_points))
            code_points.insert(index, self._random_code_point())
        elif operation == "delete":
            del code_points[self.random.random_index(len(code_points))]
        else:  # duplicate
            start, end = self._pick_run(len(code_points), size_increase_hint)
            insert_at = self.random.uniform_int(0, len(code_points))
            code_points[insert_at:insert_at] = code_points[start:end]

        return ''.join(chr(c) for c in code_points)

    def _flip_code_point(self, code_point: int) -> int:
        # Stay within the payload bits of the current encoding width
        bits = UTF8_PAYLOAD_BITS[utf8_width(code_point) - 1]
        return fix_code_point(code_point ^ (1 << self.random.random_index(bits)))

    def _random_code_point(self) -> int:
        low, high = self.random.pick_one_of(UTF8_RANGES)
        return fix_code_point(self.random.uniform_int(low, high))

    # Shared helpers

    def _sequence_operations(self, length: int, size_increase_hint: int) -> List[str]:
        """Operations whose expected growth fits the hint."""
        if length == 0:
            return ["insert"]
        operations = ["flip", "delete"]
        if size_increase_hint > 0:
            operations.extend(["insert", "duplicate"])
        return operations

    def _pick_run(self, length: int, size_increase_hint: int):
        """(start, end) of a non-empty run no longer than the hint."""
        run = self.random.uniform_int(1, max(1, min(length, size_increase_hint)))
        start = self.random.uniform_int(0, length - run)
        return start, start + run
