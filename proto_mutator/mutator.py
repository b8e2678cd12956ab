#!/usr/bin/env python3
"""
Protobuf Mutator

This module provides the public entry point of the package. A Mutator owns
the random engine, the settings and the post-processor registry, and runs
each operation as edit, repair, post-process:

    mutator = Mutator(seed=42)
    mutator.mutate(message, size_increase_hint=64)
    mutator.cross_over(other, message)

Subclasses may override any scalar hook (mutate_int32 ... mutate_utf8_string)
to change how a single kind of value is mutated.
"""

import logging
from typing import Optional

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from . import schema
from .config import MutatorSettings
from .field_walker import FieldWalker
from .initializer import InitializationEnforcer
from .post_processing import PostProcessorRegistry
from .random_engine import RandomEngine
from .scalar_mutators import ScalarMutators
from .schema import FieldKind

logger = logging.getLogger(__name__)


class Mutator:
    """Structure-aware mutation and crossover of protobuf messages."""

    def __init__(self, seed: Optional[int] = None,
                 settings: Optional[MutatorSettings] = None,
                 scalar_mutators=ScalarMutators):
        """
        Initialize the mutator.

        Args:
            seed: Seed of the random engine (reduced to 32 bits)
            settings: MutatorSettings; defaults are used when omitted
            scalar_mutators: Factory taking the random engine and returning
                the scalar strategy bundle
        """
        self.settings = settings if settings is not None else MutatorSettings()
        self._random = RandomEngine(seed)
        self.scalar_mutators = scalar_mutators(self._random)
        self.post_processors = PostProcessorRegistry()
        self._walker = FieldWalker(self, self._random, self.settings)
        self._enforcer = InitializationEnforcer(self._walker, self.settings)

    @property
    def random(self) -> RandomEngine:
        return self._random

    def seed(self, value: int) -> None:
        """Reset the random stream."""
        self._random.seed(value)

    def set_mutation_settings(self, **kwargs) -> None:
        """
        Update settings in place, e.g. set_mutation_settings(max_depth=10).
        Invalid values raise ValueError and leave the settings untouched.
        """
        self.settings.update(**kwargs)

    # Public operations

    def mutate(self, message: Message, size_increase_hint: Optional[int] = None) -> Message:
        """
        Apply one random structural edit to message in place.

        Args:
            message: Message to mutate
            size_increase_hint: Approximate number of bytes the result may
                grow by. Only biases probabilities; a small hint makes
                additions rarer, None weighs every edit equally.

        Returns:
            Message: The same instance
        """
        self._check_message(message)
        if size_increase_hint is not None:
            size_increase_hint = max(0, int(size_increase_hint))

        if not self._walker.mutate(message, size_increase_hint):
            logger.debug(f"{message.DESCRIPTOR.full_name} offers no mutation target")

        self._enforcer.initialize_and_trim(message)
        self._apply_post_processing(message)
        return message

    def mutate_with_max_size(self, message: Message, max_size: int) -> Message:
        """Mutate with the hint derived from the room left below max_size bytes."""
        self._check_message(message)
        return self.mutate(message, max(0, max_size - message.ByteSize()))

    def cross_over(self, message1: Message, message2: Message) -> Message:
        """
        Merge content of message1 into message2.

        Args:
            message1: Source; never modified
            message2: Destination, modified in place

        Returns:
            Message: message2
        """
        self._check_message(message1)
        self._check_message(message2)
        if message1.DESCRIPTOR.full_name != message2.DESCRIPTOR.full_name:
            raise ValueError(f"Cannot cross over {message1.DESCRIPTOR.full_name} "
                             f"with {message2.DESCRIPTOR.full_name}")

        source = schema.clone_message(message1) if message1 is message2 else message1
        self._cross_over_impl(source, message2, 0)

        self._enforcer.initialize_and_trim(message2)
        self._apply_post_processing(message2)
        return message2

    def register_post_processor(self, descriptor, callback) -> None:
        """Run callback(message, seed) on every instance of descriptor after each operation."""
        self.post_processors.register(descriptor, callback)

    def is_initialized(self, message: Message) -> bool:
        return message.IsInitialized()

    # Crossover

    def _cross_over_impl(self, source: Message, target: Message, depth: int) -> None:
        budget_left = depth + 1 <= self.settings.max_depth

        for field in source.DESCRIPTOR.fields:
            if schema.holds_messages(field) and not budget_left:
                continue

            if schema.is_map(field):
                self._cross_over_map(source, target, field, depth)
            elif schema.is_repeated(field):
                self._cross_over_repeated(source, target, field, depth)
            elif schema.field_kind(field) is FieldKind.MESSAGE:
                if not source.HasField(field.name):
                    continue
                if not target.HasField(field.name) and not self._random.random_bool():
                    continue
                self._cross_over_impl(schema.get_value(source, field),
                                      schema.mutable_message(target, field), depth + 1)
            elif schema.has_field(source, field) and self._random.random_bool():
                schema.set_value(target, field, schema.get_value(source, field))

    def _cross_over_repeated(self, source: Message, target: Message,
                             field: FieldDescriptor, depth: int) -> None:
        nested = schema.holds_messages(field)
        pool = list(schema.get_value(target, field)) + list(schema.get_value(source, field))
        if not pool:
            return
        if nested:
            pool = [schema.clone_message(element) for element in pool]

        order = list(range(len(pool)))
        self._random.shuffle(order)
        keep = self._random.uniform_int(0, len(pool))
        kept, dropped = order[:keep], order[keep:]

        if nested:
            for index in kept:
                if dropped and self._random.random_bool():
                    partner = pool[self._random.pick_one_of(dropped)]
                    self._cross_over_impl(partner, pool[index], depth + 1)

        limit = self.settings.max_repeated_size
        if limit is not None:
            kept = kept[:limit]

        schema.clear_field(target, field)
        container = schema.get_value(target, field)
        for index in kept:
            if nested:
                container.add().CopyFrom(pool[index])
            else:
                container.append(pool[index])

    def _cross_over_map(self, source: Message, target: Message,
                        field: FieldDescriptor, depth: int) -> None:
        _, value_field = schema.map_entry_fields(field)
        nested = schema.field_kind(value_field) is FieldKind.MESSAGE
        source_map = schema.get_value(source, field)
        target_map = schema.get_value(target, field)

        for key in schema.sorted_map_keys(source_map):
            if not self._random.random_bool():
                continue
            if nested:
                target_map[key].CopyFrom(source_map[key])
            else:
                target_map[key] = source_map[key]

        limit = self.settings.max_repeated_size
        if limit is None:
            return
        while len(target_map) > limit:
            del target_map[self._random.pick_one_of(schema.sorted_map_keys(target_map))]

    # Post-processing

    def _apply_post_processing(self, message: Message) -> None:
        if len(self.post_processors):
            self.post_processors.apply(message, self._random)

    @staticmethod
    def _check_message(message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"Expected a protobuf message, got {type(message).__name__}")

    # Scalar hooks

    def mutate_int32(self, value: int, size_increase_hint: int = 0) -> int:
        return self.scalar_mutators.mutate_int32(value, size_increase_hint)

    def mutate_int64(self, value: int, size_increase_hint: int = 0) -> int:
        return self.scalar_mutators.mutate_int64(value, size_increase_hint)

    def mutate_uint32(self, value: int, size_increase_hint: int = 0) -> int:
        return self.scalar_mutators.mutate_uint32(value, size_increase_hint)

    def mutate_uint64(self, value: int, size_increase_hint: int = 0) -> int:
        return self.scalar_mutators.mutate_uint64(value, size_increase_hint)

    def mutate_float(self, value: float, size_increase_hint: int = 0) -> float:
        return self.scalar_mutators.mutate_float(value, size_increase_hint)

    def mutate_double(self, value: float, size_increase_hint: int = 0) -> float:
        return self.scalar_mutators.mutate_double(value, size_increase_hint)

    def mutate_bool(self, value: bool) -> bool:
        return self.scalar_mutators.mutate_bool(value)

    def mutate_enum(self, index: int, item_count: int) -> int:
        return self.scalar_mutators.mutate_enum(index, item_count)

    def mutate_bytes(self, value: bytes, size_increase_hint: int = 0) -> bytes:
        return self.scalar_mutators.mutate_bytes(value, size_increase_hint)

    def mutate_utf8_string(self, value: str, size_increase_hint: int = 0) -> str:
        return self.scalar_mutators.mutate_utf8_string(value, size_increase_hint)
