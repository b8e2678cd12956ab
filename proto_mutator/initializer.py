#!/usr/bin/env python3
"""
Initialization Enforcer for the Protobuf Mutator

Post-order repair pass run after every mutation and crossover: sub-trees
deeper than the maximum depth are trimmed, and unset required fields are
filled with default or freshly synthesized values.
"""

import logging

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

from . import schema
from .schema import FieldKind

logger = logging.getLogger(__name__)


class InitializationEnforcer:
    """Restores required-field completeness and the depth bound."""

    def __init__(self, walker, settings):
        """
        Initialize the enforcer.

        Args:
            walker: FieldWalker used to synthesize new values
            settings: MutatorSettings read at call time
        """
        self.walker = walker
        self.settings = settings

    def initialize_and_trim(self, message: Message, depth: int = 0) -> None:
        """
        Repair the tree rooted at message, children before parents.

        Args:
            message: Node to repair
            depth: Depth of message below the root of the repair
        """
        fields = message.DESCRIPTOR.fields
        for field in fields:
            if schema.holds_messages(field):
                self._trim_or_descend(message, field, depth)

        if not self.settings.keep_initialized:
            return

        for field in fields:
            if schema.is_required(field) and not schema.has_field(message, field):
                self._materialize(message, field, depth)

    def _trim_or_descend(self, message: Message, field: FieldDescriptor, depth: int) -> None:
        child_depth = depth + 1
        within_budget = child_depth <= self.settings.max_depth

        if schema.is_repeated(field):
            container = schema.get_value(message, field)
            if not within_budget:
                if len(container):
                    logger.debug(f"Trimming {field.full_name} beyond depth {self.settings.max_depth}")
                    schema.clear_field(message, field)
                return
            if schema.is_map(field):
                elements = [container[key] for key in schema.sorted_map_keys(container)]
            else:
                elements = list(container)
            for element in elements:
                self.initialize_and_trim(element, child_depth)
            return

        if not message.HasField(field.name):
            return
        if within_budget:
            self.initialize_and_trim(schema.get_value(message, field), child_depth)
        elif schema.is_required(field):
            # Placeholder: present but without content, so recursion stops here
            schema.set_empty_message(message, field)
        else:
            logger.debug(f"Trimming {field.full_name} beyond depth {self.settings.max_depth}")
            schema.clear_field(message, field)

    def _materialize(self, message: Message, field: FieldDescriptor, depth: int) -> None:
        """Give an unset required field a value."""
        kind = schema.field_kind(field)
        if kind is not FieldKind.MESSAGE:
            schema.set_value(message, field, self.walker.synthesize_value(field, kind))
            return

        sub_message = schema.mutable_message(message, field)
        child_depth = depth + 1
        if child_depth > self.settings.max_depth:
            return
        self.walker.populate_message(sub_message, child_depth)
        self.initialize_and_trim(sub_message, child_depth)
