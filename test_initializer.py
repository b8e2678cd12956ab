#!/usr/bin/env python3
"""
Tests for the repair pass: required-field materialization and depth trimming.
"""

from proto_mutator.config import MutatorSettings
from proto_mutator.field_walker import FieldWalker
from proto_mutator.initializer import InitializationEnforcer
from proto_mutator.random_engine import RandomEngine
from proto_mutator.scalar_mutators import ScalarMutators
from proto_mutator.schema import message_depth
from sample_messages import Chain, Node, Recursive


def make_enforcer(seed=1, **settings):
    engine = RandomEngine(seed)
    mutator_settings = MutatorSettings(**settings)
    walker = FieldWalker(ScalarMutators(engine), engine, mutator_settings)
    return InitializationEnforcer(walker, mutator_settings)


def chain_of(message_class, length):
    root = message_class(x=0)
    node = root
    for i in range(1, length + 1):
        node = node.child
        node.x = i
    return root


def test_missing_required_scalar_is_set():
    message = Node(name="no x")
    make_enforcer().initialize_and_trim(message)
    assert message.HasField("x")
    assert message.IsInitialized()


def test_required_fields_set_transitively():
    message = Node(x=1)
    message.child.name = "child without x"
    message.children.add()
    message.leaves[3].n = 4
    message.leaf.n = 1
    make_enforcer().initialize_and_trim(message)
    assert message.child.HasField("x")
    assert message.children[0].HasField("x")
    assert message.leaves[3].HasField("id")
    assert message.leaf.HasField("id")
    assert message.IsInitialized()


def test_keep_initialized_off_leaves_required_unset():
    message = Node(name="no x")
    make_enforcer(keep_initialized=False).initialize_and_trim(message)
    assert not message.HasField("x")


def test_deep_optional_chain_is_trimmed():
    message = chain_of(Recursive, 6)
    make_enforcer(max_depth=3).initialize_and_trim(message)
    assert message_depth(message) == 3
    assert not message.child.child.child.HasField("child")


def test_trimming_runs_without_keep_initialized():
    message = chain_of(Recursive, 6)
    make_enforcer(max_depth=2, keep_initialized=False).initialize_and_trim(message)
    assert message_depth(message) == 2


def test_deep_repeated_messages_are_cleared():
    message = Node(x=1)
    message.child.x = 2
    message.child.children.add(x=3)
    message.child.leaves[1].id = "deep"
    make_enforcer(max_depth=1).initialize_and_trim(message)
    assert len(message.child.children) == 0
    assert len(message.child.leaves) == 0
    assert message.child.x == 2


def test_scalar_map_is_not_a_level():
    message = Node(x=1)
    message.counts["a"] = 1
    make_enforcer(max_depth=1).initialize_and_trim(message)
    assert message.counts["a"] == 1


def test_required_recursion_stops_at_placeholder():
    message = Chain()
    make_enforcer(max_depth=3).initialize_and_trim(message)
    assert message_depth(message) == 3
    node = message
    for _ in range(3):
        assert node.HasField("x")
        node = node.next
    assert node.HasField("x")
    assert node.HasField("next")
    # Below the ceiling only an empty placeholder remains
    assert node.next.ListFields() == []


def test_within_budget_content_is_kept():
    message = chain_of(Recursive, 2)
    before = message.SerializeToString(deterministic=True)
    make_enforcer(max_depth=5).initialize_and_trim(message)
    assert message.SerializeToString(deterministic=True) == before
