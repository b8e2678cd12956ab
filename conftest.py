"""Pytest configuration for the proto_mutator test suite.

Hypothesis profiles:
- dev: local development (200 examples)
- ci: CI runs (50 examples, derandomized)

Selected with HYPOTHESIS_PROFILE, or "ci" when CI=true is set.
"""

import os

import pytest
from hypothesis import HealthCheck, settings

from proto_mutator import Mutator, MutatorSettings
from sample_messages import Node

settings.register_profile(
    "dev",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

settings.register_profile(
    "ci",
    max_examples=50,
    deadline=None,
    derandomize=True,
    print_blob=True,
    suppress_health_check=[HealthCheck.too_slow],
)


def _detect_profile() -> str:
    explicit = os.environ.get("HYPOTHESIS_PROFILE")
    if explicit in ("dev", "ci"):
        return explicit
    if os.environ.get("CI") == "true":
        return "ci"
    return "dev"


settings.load_profile(_detect_profile())


@pytest.fixture
def mutator():
    """Mutator with a fixed seed and default settings."""
    return Mutator(seed=1)


@pytest.fixture
def shallow_mutator():
    return Mutator(seed=1, settings=MutatorSettings(max_depth=3))


@pytest.fixture
def node():
    """A small, fully initialized Node."""
    message = Node(x=5, name="seed")
    message.child.x = 6
    message.values.extend([1, 2])
    return message

