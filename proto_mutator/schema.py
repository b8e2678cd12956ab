#!/usr/bin/env python3
"""
Schema Access for the Protobuf Mutator

This module maps protobuf field descriptors onto a small set of field kinds
and provides uniform get/set/has/clear/size operations over message
instances, so the traversal code never depends on a concrete message class.
"""

import enum
from typing import Any, Iterator, List, Tuple

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message


class FieldKind(enum.Enum):
    """Value kinds a field can hold."""
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    DOUBLE = "double"
    FLOAT = "float"
    BOOL = "bool"
    ENUM = "enum"
    STRING = "string"
    BYTES = "bytes"
    MESSAGE = "message"


_CPP_TYPE_KINDS = {
    FieldDescriptor.CPPTYPE_INT32: FieldKind.INT32,
    FieldDescriptor.CPPTYPE_INT64: FieldKind.INT64,
    FieldDescriptor.CPPTYPE_UINT32: FieldKind.UINT32,
    FieldDescriptor.CPPTYPE_UINT64: FieldKind.UINT64,
    FieldDescriptor.CPPTYPE_DOUBLE: FieldKind.DOUBLE,
    FieldDescriptor.CPPTYPE_FLOAT: FieldKind.FLOAT,
    FieldDescriptor.CPPTYPE_BOOL: FieldKind.BOOL,
    FieldDescriptor.CPPTYPE_ENUM: FieldKind.ENUM,
    FieldDescriptor.CPPTYPE_MESSAGE: FieldKind.MESSAGE,
}


def field_kind(field: FieldDescriptor) -> FieldKind:
    """Kind of the values held by a field."""
    if field.cpp_type == FieldDescriptor.CPPTYPE_STRING:
        if field.type == FieldDescriptor.TYPE_BYTES:
            return FieldKind.BYTES
        return FieldKind.STRING
    return _CPP_TYPE_KINDS[field.cpp_type]


def is_repeated(field: FieldDescriptor) -> bool:
    # Newer protobuf releases expose the label as boolean properties
    if hasattr(field, "is_repeated"):
        return field.is_repeated
    return field.label == FieldDescriptor.LABEL_REPEATED


def is_required(field: FieldDescriptor) -> bool:
    if hasattr(field, "is_required"):
        return field.is_required
    return field.label == FieldDescriptor.LABEL_REQUIRED


def is_map(field: FieldDescriptor) -> bool:
    """Whether the field is a map (a repeated field of map entries)."""
    return (field.message_type is not None
            and field.message_type.GetOptions().map_entry)


def map_entry_fields(field: FieldDescriptor) -> Tuple[FieldDescriptor, FieldDescriptor]:
    """(key, value) field descriptors of a map field."""
    entry = field.message_type
    return entry.fields_by_name["key"], entry.fields_by_name["value"]


def holds_messages(field: FieldDescriptor) -> bool:
    """Whether the field's elements are sub-messages (maps: the values)."""
    if is_map(field):
        _, value_field = map_entry_fields(field)
        return field_kind(value_field) is FieldKind.MESSAGE
    return field_kind(field) is FieldKind.MESSAGE


def enum_item_count(field: FieldDescriptor) -> int:
    return len(field.enum_type.values)


def enum_index(field: FieldDescriptor, number: int) -> int:
    """Position of an enum number among the declared values (0 if unknown)."""
    for value in field.enum_type.values:
        if value.number == number:
            return value.index
    return 0


def enum_number(field: FieldDescriptor, index: int) -> int:
    return field.enum_type.values[index].number


_ZERO_VALUES = {
    FieldKind.INT32: 0,
    FieldKind.INT64: 0,
    FieldKind.UINT32: 0,
    FieldKind.UINT64: 0,
    FieldKind.DOUBLE: 0.0,
    FieldKind.FLOAT: 0.0,
    FieldKind.BOOL: False,
    FieldKind.STRING: "",
    FieldKind.BYTES: b"",
}


def default_value(field: FieldDescriptor) -> Any:
    """
    Default for a scalar or enum field.

    Singular fields use the schema-declared default. Repeated fields have no
    per-element default, so their elements start from the zero value of the
    kind, or the first declared number for enums.
    """
    if not is_repeated(field):
        return field.default_value
    kind = field_kind(field)
    if kind is FieldKind.ENUM:
        return field.enum_type.values[0].number
    return _ZERO_VALUES[kind]


# Message instance access


def has_field(message: Message, field: FieldDescriptor) -> bool:
    """Whether a field holds a value (repeated: at least one element)."""
    if is_repeated(field):
        return len(getattr(message, field.name)) > 0
    if field.has_presence:
        return message.HasField(field.name)
    # Implicit presence: a value equal to the default counts as unset
    return getattr(message, field.name) != field.default_value


def field_size(message: Message, field: FieldDescriptor) -> int:
    return len(getattr(message, field.name))


def get_value(message: Message, field: FieldDescriptor) -> Any:
    return getattr(message, field.name)


def clear_oneof_siblings(message: Message, field: FieldDescriptor) -> None:
    """Clear whichever member of the field's oneof group is set."""
    oneof = field.containing_oneof
    if oneof is not None:
        message.ClearField(oneof.name)


def set_value(message: Message, field: FieldDescriptor, value: Any) -> None:
    """Set a singular scalar/enum field, keeping its oneof group exclusive."""
    if not has_field(message, field):
        clear_oneof_siblings(message, field)
    setattr(message, field.name, value)


def mutable_message(message: Message, field: FieldDescriptor) -> Message:
    """Singular sub-message, marked present (oneof siblings cleared first)."""
    if not message.HasField(field.name):
        clear_oneof_siblings(message, field)
    sub_message = getattr(message, field.name)
    sub_message.SetInParent()
    return sub_message


def clear_field(message: Message, field: FieldDescriptor) -> None:
    message.ClearField(field.name)


def set_empty_message(message: Message, field: FieldDescriptor) -> None:
    """Replace a singular message field by an empty, present instance."""
    message.ClearField(field.name)
    mutable_message(message, field)


def sorted_map_keys(container) -> List[Any]:
    """Map keys in a stable order."""
    return sorted(container.keys())


def clone_message(message: Message) -> Message:
    """Detached deep copy of a message."""
    copy = type(message)()
    copy.CopyFrom(message)
    return copy


def iter_child_messages(message: Message) -> Iterator[Message]:
    """Set sub-messages of a node, in field order (maps by sorted key)."""
    for field in message.DESCRIPTOR.fields:
        if not holds_messages(field):
            continue
        container = getattr(message, field.name)
        if is_map(field):
            for key in sorted_map_keys(container):
                yield container[key]
        elif is_repeated(field):
            yield from container
        elif message.HasField(field.name):
            yield container


def message_depth(message: Message) -> int:
    """
    Nesting depth of a tree: 0 for a message without populated sub-messages.
    Empty sub-messages do not count as a level.
    """
    depth = 0
    for child in iter_child_messages(message):
        if child.ListFields():
            depth = max(depth, 1 + message_depth(child))
    return depth
