#!/usr/bin/env python3
"""
Message schemas used by the test suite.

The schemas are built at runtime from FileDescriptorProto definitions so the
tests need no protoc step:

    Node          proto2 message covering every field kind, oneofs and maps
    Leaf          proto2 message with a required string
    Recursive     required int32 x plus an optional self-typed child
    Chain         required int32 x plus a required self-typed child
    Plain         proto3 message with implicit-presence fields
    Repeats       proto2 message with a repeated field of every scalar kind
    PlainRepeats  the same fields in proto3
"""

from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory

FieldProto = descriptor_pb2.FieldDescriptorProto

PACKAGE = "mutator_test"

OPTIONAL = FieldProto.LABEL_OPTIONAL
REQUIRED = FieldProto.LABEL_REQUIRED
REPEATED = FieldProto.LABEL_REPEATED


def _add_field(message_proto, name, number, field_type, label=OPTIONAL,
               type_name=None, default_value=None, oneof_index=None):
    field = message_proto.field.add(name=name, number=number, type=field_type, label=label)
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"
    if default_value is not None:
        field.default_value = default_value
    if oneof_index is not None:
        field.oneof_index = oneof_index
    return field


def _add_map_field(message_proto, name, number, key_type, value_type, value_type_name=None):
    entry_name = "".join(part.capitalize() for part in name.split("_")) + "Entry"
    entry = message_proto.nested_type.add(name=entry_name)
    entry.options.map_entry = True
    _add_field(entry, "key", 1, key_type)
    _add_field(entry, "value", 2, value_type, type_name=value_type_name)
    _add_field(message_proto, name, number, FieldProto.TYPE_MESSAGE, REPEATED,
               type_name=f"{message_proto.name}.{entry_name}")


REPEATED_SCALAR_TYPES = (
    ("int32s", FieldProto.TYPE_INT32),
    ("int64s", FieldProto.TYPE_INT64),
    ("uint32s", FieldProto.TYPE_UINT32),
    ("uint64s", FieldProto.TYPE_UINT64),
    ("doubles", FieldProto.TYPE_DOUBLE),
    ("floats", FieldProto.TYPE_FLOAT),
    ("bools", FieldProto.TYPE_BOOL),
    ("strings", FieldProto.TYPE_STRING),
    ("blobs", FieldProto.TYPE_BYTES),
)


def _add_repeats(message_proto, enum_name):
    for number, (name, field_type) in enumerate(REPEATED_SCALAR_TYPES, start=1):
        _add_field(message_proto, name, number, field_type, REPEATED)
    _add_field(message_proto, "enums", len(REPEATED_SCALAR_TYPES) + 1,
               FieldProto.TYPE_ENUM, REPEATED, type_name=enum_name)


def _proto2_file():
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="mutator_test/proto2.proto", package=PACKAGE, syntax="proto2")

    color = file_proto.enum_type.add(name="Color")
    for number, name in enumerate(("RED", "GREEN", "BLUE")):
        color.value.add(name=name, number=number)

    leaf = file_proto.message_type.add(name="Leaf")
    _add_field(leaf, "id", 1, FieldProto.TYPE_STRING, REQUIRED)
    _add_field(leaf, "n", 2, FieldProto.TYPE_INT64)

    node = file_proto.message_type.add(name="Node")
    node.oneof_decl.add(name="choice")
    _add_field(node, "x", 1, FieldProto.TYPE_INT32, REQUIRED)
    _add_field(node, "child", 2, FieldProto.TYPE_MESSAGE, type_name="Node")
    _add_field(node, "children", 3, FieldProto.TYPE_MESSAGE, REPEATED, type_name="Node")
    _add_field(node, "name", 4, FieldProto.TYPE_STRING)
    _add_field(node, "blob", 5, FieldProto.TYPE_BYTES)
    _add_field(node, "values", 6, FieldProto.TYPE_SINT64, REPEATED)
    _add_field(node, "color", 7, FieldProto.TYPE_ENUM, type_name="Color")
    _add_field(node, "a", 8, FieldProto.TYPE_UINT32, oneof_index=0)
    _add_field(node, "b", 9, FieldProto.TYPE_STRING, oneof_index=0)
    _add_field(node, "leaf", 10, FieldProto.TYPE_MESSAGE, type_name="Leaf", oneof_index=0)
    _add_map_field(node, "counts", 11, FieldProto.TYPE_STRING, FieldProto.TYPE_INT32)
    _add_map_field(node, "leaves", 12, FieldProto.TYPE_INT32, FieldProto.TYPE_MESSAGE,
                   value_type_name="Leaf")
    _add_field(node, "ratio", 13, FieldProto.TYPE_DOUBLE)
    _add_field(node, "weight", 14, FieldProto.TYPE_FLOAT)
    _add_field(node, "flag", 15, FieldProto.TYPE_BOOL)
    _add_field(node, "big", 16, FieldProto.TYPE_UINT64)
    _add_field(node, "level", 17, FieldProto.TYPE_INT32, default_value="7")

    recursive = file_proto.message_type.add(name="Recursive")
    _add_field(recursive, "x", 1, FieldProto.TYPE_INT32, REQUIRED)
    _add_field(recursive, "child", 2, FieldProto.TYPE_MESSAGE, type_name="Recursive")

    chain = file_proto.message_type.add(name="Chain")
    _add_field(chain, "x", 1, FieldProto.TYPE_INT32, REQUIRED)
    _add_field(chain, "next", 2, FieldProto.TYPE_MESSAGE, REQUIRED, type_name="Chain")

    level = file_proto.enum_type.add(name="Level")
    for number, name in ((3, "LOW"), (5, "HIGH")):
        level.value.add(name=name, number=number)

    _add_repeats(file_proto.message_type.add(name="Repeats"), "Level")

    return file_proto


def _proto3_file():
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="mutator_test/proto3.proto", package=PACKAGE, syntax="proto3")
    plain = file_proto.message_type.add(name="Plain")
    _add_field(plain, "n", 1, FieldProto.TYPE_INT32)
    _add_field(plain, "s", 2, FieldProto.TYPE_STRING)
    _add_field(plain, "r", 3, FieldProto.TYPE_INT32, REPEATED)

    shade = file_proto.enum_type.add(name="Shade")
    for number, name in enumerate(("SHADE_UNSPECIFIED", "LIGHT", "DARK")):
        shade.value.add(name=name, number=number)

    _add_repeats(file_proto.message_type.add(name="PlainRepeats"), "Shade")
    return file_proto


def build_message_classes():
    """Return a dict of message class name to class, in a private pool."""
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(_proto2_file().SerializeToString())
    pool.AddSerializedFile(_proto3_file().SerializeToString())
    return {
        name: message_factory.GetMessageClass(pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))
        for name in ("Node", "Leaf", "Recursive", "Chain", "Plain", "Repeats", "PlainRepeats")
    }


_CLASSES = build_message_classes()

Node = _CLASSES["Node"]
Leaf = _CLASSES["Leaf"]
Recursive = _CLASSES["Recursive"]
Chain = _CLASSES["Chain"]
Plain = _CLASSES["Plain"]
Repeats = _CLASSES["Repeats"]
PlainRepeats = _CLASSES["PlainRepeats"]
