"""
proto_mutator - structure-aware mutation of protobuf messages

Provides random edits and crossover of message trees that keep the result
structurally valid (required fields set, depth bounded, oneofs exclusive),
for use from coverage-guided fuzzing loops.
"""

from .config import MutatorSettings
from .field_walker import FieldWalker, Mutation, MutationTarget
from .initializer import InitializationEnforcer
from .mutator import Mutator
from .post_processing import PostProcessorRegistry
from .random_engine import RandomEngine
from .scalar_mutators import ScalarMutators
from .schema import FieldKind

__version__ = "0.1.0"

__all__ = [
    "Mutator",
    "MutatorSettings",
    "RandomEngine",
    "ScalarMutators",
    "FieldWalker",
    "Mutation",
    "MutationTarget",
    "InitializationEnforcer",
    "PostProcessorRegistry",
    "FieldKind",
]
