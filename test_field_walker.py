#!/usr/bin/env python3
"""
Tests for target enumeration, selection and single-edit application.
"""

import pytest
from google.protobuf import empty_pb2

from proto_mutator.config import MutatorSettings
from proto_mutator.field_walker import FieldWalker, Mutation, MutationTarget
from proto_mutator.random_engine import RandomEngine
from proto_mutator.scalar_mutators import ScalarMutators
from proto_mutator.schema import field_kind
from proto_mutator.utils.common import DEFAULT_TARGET_WEIGHT, SMALL_HINT_GROWTH_WEIGHT
from sample_messages import REPEATED_SCALAR_TYPES, Leaf, Node, PlainRepeats, Repeats

REPEATED_FIELD_NAMES = [name for name, _ in REPEATED_SCALAR_TYPES] + ["enums"]


def make_walker(seed=1, **settings):
    engine = RandomEngine(seed)
    return FieldWalker(ScalarMutators(engine), engine, MutatorSettings(**settings))


def targets_of(walker, message, hint=0):
    return [(target.message, target.field.name, target.mutation, weight)
            for target, weight in walker.iter_targets(message, 0, hint)]


def mutations_for(targets, message, field_name):
    return {mutation for owner, name, mutation, _ in targets
            if owner is message and name == field_name}


class TestTargetEnumeration:
    def test_empty_message_offers_only_add(self):
        message = Node()
        targets = targets_of(make_walker(), message)
        assert targets
        assert all(mutation is Mutation.ADD for _, _, mutation, _ in targets)
        names = {name for _, name, _, _ in targets}
        assert {"x", "child", "children", "name", "counts", "leaves", "a", "b", "leaf"} <= names

    def test_required_field_is_never_deleted(self):
        message = Node(x=3)
        targets = targets_of(make_walker(), message)
        assert mutations_for(targets, message, "x") == {Mutation.MUTATE}

    def test_set_optional_field_can_be_mutated_or_deleted(self):
        message = Node(x=3, name="abc")
        targets = targets_of(make_walker(), message)
        assert mutations_for(targets, message, "name") == {Mutation.MUTATE, Mutation.DELETE}

    def test_repeated_field_offers_all_edits(self):
        message = Node(x=1, values=[1, 2, 3])
        targets = targets_of(make_walker(), message)
        assert mutations_for(targets, message, "values") == {
            Mutation.ADD, Mutation.MUTATE, Mutation.DELETE}

    def test_full_repeated_field_cannot_grow(self):
        message = Node(x=1, values=[1, 2])
        targets = targets_of(make_walker(max_repeated_size=2), message)
        assert mutations_for(targets, message, "values") == {Mutation.MUTATE, Mutation.DELETE}

    def test_recurses_into_sub_messages(self):
        message = Node(x=1)
        message.child.x = 2
        message.children.add(x=3)
        message.leaves[4].id = "leaf"
        targets = targets_of(make_walker(), message)
        x_targets = [owner for owner, name, mutation, _ in targets
                     if name == "x" and mutation is Mutation.MUTATE]
        assert len(x_targets) == 3
        assert sorted(owner.x for owner in x_targets) == [1, 2, 3]
        leaf_owners = [owner for owner, name, _, _ in targets if name == "id"]
        assert [owner.id for owner in leaf_owners] == ["leaf"]

    def test_exhausted_budget_only_deletes(self):
        message = Node(x=1)
        message.child.x = 2
        message.child.child.x = 3
        message.child.children.add(x=4)
        targets = targets_of(make_walker(max_depth=1), message)
        on_child = [(name, mutation) for owner, name, mutation, _ in targets
                    if owner.DESCRIPTOR is Node.DESCRIPTOR and owner.x == 2]
        assert {mutation for name, mutation in on_child if name == "child"} == {Mutation.DELETE}
        assert {mutation for name, mutation in on_child if name == "children"} == {Mutation.DELETE}
        assert not [name for name, _ in on_child if name == "leaves"]
        assert all(owner.x != 3 for owner, name, _, _ in targets if name == "x")

    def test_growth_weight_follows_hint(self):
        message = Node(x=1)
        walker = make_walker()
        small = {weight for _, _, mutation, weight in targets_of(walker, message, 0)
                 if mutation is Mutation.ADD}
        large = {weight for _, _, mutation, weight in targets_of(walker, message, 64)
                 if mutation is Mutation.ADD}
        assert small == {SMALL_HINT_GROWTH_WEIGHT}
        assert large == {DEFAULT_TARGET_WEIGHT}

    def test_uniform_weights_without_hint(self):
        message = Node(x=1, name="n", values=[1])
        weights = {weight for _, _, _, weight in targets_of(make_walker(), message, None)}
        assert weights == {DEFAULT_TARGET_WEIGHT}


class TestSelection:
    def test_message_without_fields_has_no_target(self):
        walker = make_walker()
        assert walker.select_target(empty_pb2.Empty()) is None
        assert walker.mutate(empty_pb2.Empty()) is False

    def test_selection_is_deterministic(self):
        message = Node(x=1, name="n", values=[1, 2])
        first = make_walker(seed=9).select_target(message)
        second = make_walker(seed=9).select_target(message)
        assert repr(first) == repr(second)

    def test_every_target_is_reachable(self):
        message = Node(x=1, name="n")
        walker = make_walker(seed=2)
        expected = {(name, mutation) for _, name, mutation, _ in targets_of(walker, message, 64)}
        seen = set()
        for _ in range(3000):
            target = walker.select_target(message, 0, 64)
            seen.add((target.field.name, target.mutation))
        assert seen == expected


class TestApply:
    def test_add_scalar_sets_field(self):
        walker = make_walker(random_to_default_ratio=1)
        message = Node(x=1)
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["name"],
                                    Mutation.ADD, 0))
        assert message.HasField("name")

    def test_delete_scalar_clears_field(self):
        walker = make_walker()
        message = Node(x=1, name="gone")
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["name"],
                                    Mutation.DELETE, 0))
        assert not message.HasField("name")

    def test_mutate_required_scalar_changes_it(self):
        walker = make_walker(seed=4)
        message = Node(x=100)
        field = Node.DESCRIPTOR.fields_by_name["x"]
        changed = False
        for _ in range(10):
            before = message.x
            walker.apply(MutationTarget(message, field, Mutation.MUTATE, 0))
            changed = changed or message.x != before
        assert changed

    def test_add_on_oneof_member_clears_sibling(self):
        walker = make_walker()
        message = Node(x=1, a=5)
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["leaf"],
                                    Mutation.ADD, 0))
        assert message.WhichOneof("choice") == "leaf"
        assert not message.HasField("a")

    def test_add_scalar_oneof_member_clears_message_sibling(self):
        walker = make_walker()
        message = Node(x=1)
        message.leaf.id = "l"
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["b"],
                                    Mutation.ADD, 0))
        assert message.WhichOneof("choice") == "b"

    def test_repeated_add_and_delete(self):
        walker = make_walker()
        message = Node(x=1, values=[1, 2])
        field = Node.DESCRIPTOR.fields_by_name["values"]
        walker.apply(MutationTarget(message, field, Mutation.ADD, 0))
        assert len(message.values) == 3
        walker.apply(MutationTarget(message, field, Mutation.DELETE, 0))
        assert len(message.values) == 2

    def test_repeated_numeric_add_across_seeds(self):
        field = Node.DESCRIPTOR.fields_by_name["values"]
        for seed in range(50):
            message = Node(x=1)
            make_walker(seed=seed).apply(MutationTarget(message, field, Mutation.ADD, 0), 16)
            assert len(message.values) == 1

    @pytest.mark.parametrize("message_class", [Repeats, PlainRepeats])
    @pytest.mark.parametrize("field_name", REPEATED_FIELD_NAMES)
    def test_repeated_add_every_kind(self, message_class, field_name):
        field = message_class.DESCRIPTOR.fields_by_name[field_name]
        for seed in range(20):
            message = message_class()
            walker = make_walker(seed=seed)
            walker.apply(MutationTarget(message, field, Mutation.ADD, 0), 16)
            walker.apply(MutationTarget(message, field, Mutation.ADD, 0), 16)
            walker.apply(MutationTarget(message, field, Mutation.MUTATE, 0), 16)
            assert len(getattr(message, field_name)) == 2
            message.SerializeToString()

    @pytest.mark.parametrize("message_class,first_enum", [(Repeats, 3), (PlainRepeats, 0)])
    def test_repeated_add_default_is_zero_value(self, message_class, first_enum):
        walker = make_walker(random_to_default_ratio=1)
        message = message_class()
        for name in REPEATED_FIELD_NAMES:
            walker.apply(MutationTarget(message, message_class.DESCRIPTOR.fields_by_name[name],
                                        Mutation.ADD, 0))
        assert list(message.int32s) == [0]
        assert list(message.uint64s) == [0]
        assert list(message.doubles) == [0.0]
        assert list(message.floats) == [0.0]
        assert list(message.bools) == [False]
        assert list(message.strings) == [""]
        assert list(message.blobs) == [b""]
        assert list(message.enums) == [first_enum]

    def test_repeated_message_add(self):
        walker = make_walker()
        message = Node(x=1)
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["children"],
                                    Mutation.ADD, 0))
        assert len(message.children) == 1

    def test_map_add_and_delete(self):
        walker = make_walker(seed=3)
        message = Node(x=1)
        field = Node.DESCRIPTOR.fields_by_name["counts"]
        walker.apply(MutationTarget(message, field, Mutation.ADD, 0))
        assert len(message.counts) == 1
        walker.apply(MutationTarget(message, field, Mutation.DELETE, 0))
        assert len(message.counts) == 0

    def test_message_map_add_creates_value(self):
        walker = make_walker(seed=3)
        message = Node(x=1)
        walker.apply(MutationTarget(message, Node.DESCRIPTOR.fields_by_name["leaves"],
                                    Mutation.ADD, 0))
        assert len(message.leaves) == 1

    def test_enum_mutation_stays_declared(self):
        walker = make_walker(seed=5)
        message = Node(x=1, color=1)
        field = Node.DESCRIPTOR.fields_by_name["color"]
        declared = {value.number for value in field.enum_type.values}
        for _ in range(20):
            walker.apply(MutationTarget(message, field, Mutation.MUTATE, 0))
            assert message.color in declared

    def test_synthesize_value_default_ratio_one(self):
        walker = make_walker(random_to_default_ratio=1)
        field = Node.DESCRIPTOR.fields_by_name["level"]
        assert walker.synthesize_value(field, field_kind(field)) == 7

    def test_populate_message_ratio_one_leaves_empty(self):
        walker = make_walker(random_to_default_ratio=1)
        leaf = Leaf()
        walker.populate_message(leaf, 1)
        assert leaf.ListFields() == []