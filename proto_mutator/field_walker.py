#!/usr/bin/env python3
"""
Field Walker for the Protobuf Mutator

This module presents a whole message tree as one address space of mutation
targets and performs the single structural edit chosen for each mutation.
Recursion into sub-messages is bounded by the configured maximum depth.
"""

import enum
import logging
from typing import Any, Iterator, Optional, Tuple

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from . import schema
from .schema import FieldKind
from .utils.common import (
    DEFAULT_TARGET_WEIGHT,
    SMALL_HINT_GROWTH_WEIGHT,
    SMALL_SIZE_HINT,
)

logger = logging.getLogger(__name__)


class Mutation(enum.Enum):
    """Structural edits a target can receive."""
    ADD = "add"
    MUTATE = "mutate"
    DELETE = "delete"


class MutationTarget:
    """One field occurrence somewhere in the tree, plus the edit to apply."""

    __slots__ = ("message", "field", "mutation", "depth")

    def __init__(self, message: Message, field: FieldDescriptor,
                 mutation: Mutation, depth: int):
        self.message = message
        self.field = field
        self.mutation = mutation
        self.depth = depth

    def __repr__(self):
        return (f"MutationTarget({self.message.DESCRIPTOR.full_name}."
                f"{self.field.name}, {self.mutation.value}, depth={self.depth})")


class FieldWalker:
    """Schema-driven traversal and editing of message trees."""

    def __init__(self, hooks, random_engine, settings):
        """
        Initialize the walker.

        Args:
            hooks: Object providing the scalar mutation hooks
                (mutate_int32, ..., mutate_utf8_string)
            random_engine: Engine supplying all randomness
            settings: MutatorSettings read at call time
        """
        self.hooks = hooks
        self.random = random_engine
        self.settings = settings

    # Target enumeration

    def iter_targets(self, message: Message, depth: int = 0,
                     size_increase_hint: Optional[int] = None) -> Iterator[Tuple[MutationTarget, int]]:
        """
        Yield (target, weight) for every mutation target in the tree rooted
        at message, depth-first.

        Args:
            message: Root of the walk
            depth: Depth of message below the mutation root
            size_increase_hint: Approximate number of bytes that may be added;
                None weights every target equally
        """
        growth_weight = self._growth_weight(size_increase_hint)
        child_depth = depth + 1
        budget_left = child_depth <= self.settings.max_depth

        for field in message.DESCRIPTOR.fields:
            kind = schema.field_kind(field)
            if kind is FieldKind.ENUM and schema.enum_item_count(field) == 0:
                continue

            if schema.is_repeated(field):
                size = schema.field_size(message, field)
                nested = schema.holds_messages(field)
                if nested and not budget_left:
                    if size:
                        yield MutationTarget(message, field, Mutation.DELETE, depth), DEFAULT_TARGET_WEIGHT
                    continue
                if self._can_grow(size):
                    yield MutationTarget(message, field, Mutation.ADD, depth), growth_weight
                if size:
                    yield MutationTarget(message, field, Mutation.MUTATE, depth), DEFAULT_TARGET_WEIGHT
                    yield MutationTarget(message, field, Mutation.DELETE, depth), DEFAULT_TARGET_WEIGHT
                if nested:
                    container = schema.get_value(message, field)
                    if schema.is_map(field):
                        elements = [container[key] for key in schema.sorted_map_keys(container)]
                    else:
                        elements = list(container)
                    for element in elements:
                        yield from self.iter_targets(element, child_depth, size_increase_hint)
                continue

            is_set = schema.has_field(message, field)
            required = schema.is_required(field)

            if kind is FieldKind.MESSAGE:
                if not budget_left:
                    # Required fields here are left to the initialization pass
                    if is_set and not required:
                        yield MutationTarget(message, field, Mutation.DELETE, depth), DEFAULT_TARGET_WEIGHT
                    continue
                if not is_set:
                    yield MutationTarget(message, field, Mutation.ADD, depth), growth_weight
                    continue
                yield MutationTarget(message, field, Mutation.MUTATE, depth), DEFAULT_TARGET_WEIGHT
                if not required:
                    yield MutationTarget(message, field, Mutation.DELETE, depth), DEFAULT_TARGET_WEIGHT
                yield from self.iter_targets(
                    schema.get_value(message, field), child_depth, size_increase_hint)
                continue

            if not is_set:
                yield MutationTarget(message, field, Mutation.ADD, depth), growth_weight
                continue
            yield MutationTarget(message, field, Mutation.MUTATE, depth), DEFAULT_TARGET_WEIGHT
            if not required:
                yield MutationTarget(message, field, Mutation.DELETE, depth), DEFAULT_TARGET_WEIGHT

    def select_target(self, message: Message, depth: int = 0,
                      size_increase_hint: Optional[int] = None) -> Optional[MutationTarget]:
        """Weighted reservoir sample of one target; None for an empty tree."""
        chosen = None
        total_weight = 0
        for target, weight in self.iter_targets(message, depth, size_increase_hint):
            total_weight += weight
            if self.random.uniform_int(1, total_weight) <= weight:
                chosen = target
        return chosen

    def _growth_weight(self, size_increase_hint: Optional[int]) -> int:
        if size_increase_hint is not None and size_increase_hint < SMALL_SIZE_HINT:
            return SMALL_HINT_GROWTH_WEIGHT
        return DEFAULT_TARGET_WEIGHT

    def _can_grow(self, size: int) -> bool:
        limit = self.settings.max_repeated_size
        return limit is None or size < limit

    # Editing

    def mutate(self, message: Message, size_increase_hint: Optional[int] = None,
               depth: int = 0) -> bool:
        """
        Apply exactly one structural edit somewhere in the tree.

        Returns:
            bool: False when the tree offers no mutation target
        """
        target = self.select_target(message, depth, size_increase_hint)
        if target is None:
            return False
        self.apply(target, size_increase_hint)
        return True

    def apply(self, target: MutationTarget, size_increase_hint: Optional[int] = None) -> None:
        """Perform the edit described by a target."""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Applying {target!r}")

        if schema.is_map(target.field):
            self._apply_map(target, size_increase_hint)
        elif schema.is_repeated(target.field):
            self._apply_repeated(target, size_increase_hint)
        elif schema.field_kind(target.field) is FieldKind.MESSAGE:
            self._apply_message(target, size_increase_hint)
        else:
            self._apply_scalar(target, size_increase_hint)

    def _apply_scalar(self, target: MutationTarget, size_increase_hint: Optional[int]) -> None:
        message, field = target.message, target.field
        kind = schema.field_kind(field)

        if target.mutation is Mutation.DELETE:
            schema.clear_field(message, field)
        elif target.mutation is Mutation.ADD:
            schema.set_value(message, field,
                             self.synthesize_value(field, kind, size_increase_hint))
        else:
            old_value = schema.get_value(message, field)
            schema.set_value(message, field,
                             self.mutate_value(field, kind, old_value, size_increase_hint))

    def _apply_message(self, target: MutationTarget, size_increase_hint: Optional[int]) -> None:
        message, field = target.message, target.field

        if target.mutation is Mutation.DELETE:
            schema.clear_field(message, field)
        elif target.mutation is Mutation.ADD:
            sub_message = schema.mutable_message(message, field)
            self.populate_message(sub_message, target.depth + 1, size_increase_hint)
        else:
            self.mutate(schema.get_value(message, field), size_increase_hint, target.depth + 1)

    def _apply_repeated(self, target: MutationTarget, size_increase_hint: Optional[int]) -> None:
        message, field = target.message, target.field
        kind = schema.field_kind(field)
        container = schema.get_value(message, field)

        if target.mutation is Mutation.DELETE:
            del container[self.random.random_index(len(container))]
        elif target.mutation is Mutation.ADD:
            if kind is FieldKind.MESSAGE:
                self.populate_message(container.add(), target.depth + 1, size_increase_hint)
            else:
                container.append(self.synthesize_value(field, kind, size_increase_hint))
        else:
            index = self.random.random_index(len(container))
            if kind is FieldKind.MESSAGE:
                self.mutate(container[index], size_increase_hint, target.depth + 1)
            else:
                container[index] = self.mutate_value(field, kind, container[index],
                                                     size_increase_hint)

    def _apply_map(self, target: MutationTarget, size_increase_hint: Optional[int]) -> None:
        message, field = target.message, target.field
        key_field, value_field = schema.map_entry_fields(field)
        value_kind = schema.field_kind(value_field)
        container = schema.get_value(message, field)

        if target.mutation is Mutation.ADD:
            key = self.synthesize_value(key_field, schema.field_kind(key_field),
                                        size_increase_hint)
            if value_kind is FieldKind.MESSAGE:
                self.populate_message(container[key], target.depth + 1, size_increase_hint)
            else:
                container[key] = self.synthesize_value(value_field, value_kind,
                                                       size_increase_hint)
            return

        key = self.random.pick_one_of(schema.sorted_map_keys(container))
        if target.mutation is Mutation.DELETE:
            del container[key]
        elif value_kind is FieldKind.MESSAGE:
            self.mutate(container[key], size_increase_hint, target.depth + 1)
        else:
            container[key] = self.mutate_value(value_field, value_kind, container[key],
                                               size_increase_hint)

    # Values

    def populate_message(self, message: Message, depth: int,
                         size_increase_hint: Optional[int] = None) -> None:
        """
        Give a freshly created sub-message its content: left empty with
        probability 1/random_to_default_ratio, otherwise one recursive edit.
        """
        if self.random.one_in(self.settings.random_to_default_ratio):
            return
        if size_increase_hint is not None:
            size_increase_hint //= 2
        self.mutate(message, size_increase_hint, depth)

    def synthesize_value(self, field: FieldDescriptor, kind: FieldKind,
                         size_increase_hint: Optional[int] = None) -> Any:
        """A new value for a field: its default, or the default mutated once."""
        default = schema.default_value(field)
        if self.random.one_in(self.settings.random_to_default_ratio):
            return default
        return self.mutate_value(field, kind, default, size_increase_hint)

    def mutate_value(self, field: FieldDescriptor, kind: FieldKind, value: Any,
                     size_increase_hint: Optional[int] = None) -> Any:
        """Dispatch a scalar value to the mutation hook for its kind."""
        hooks = self.hooks
        size_increase_hint = size_increase_hint or 0
        if kind is FieldKind.INT32:
            return hooks.mutate_int32(value, size_increase_hint)
        elif kind is FieldKind.INT64:
            return hooks.mutate_int64(value, size_increase_hint)
        elif kind is FieldKind.UINT32:
            return hooks.mutate_uint32(value, size_increase_hint)
        elif kind is FieldKind.UINT64:
            return hooks.mutate_uint64(value, size_increase_hint)
        elif kind is FieldKind.FLOAT:
            return hooks.mutate_float(value, size_increase_hint)
        elif kind is FieldKind.DOUBLE:
            return hooks.mutate_double(value, size_increase_hint)
        elif kind is FieldKind.BOOL:
            return hooks.mutate_bool(value)
        elif kind is FieldKind.ENUM:
            index = hooks.mutate_enum(schema.enum_index(field, value),
                                      schema.enum_item_count(field))
            return schema.enum_number(field, index)
        elif kind is FieldKind.STRING:
            return hooks.mutate_utf8_string(value, size_increase_hint)
        elif kind is FieldKind.BYTES:
            return hooks.mutate_bytes(value, size_increase_hint)
        raise TypeError(f"Field {field.full_name} does not hold a scalar value")
