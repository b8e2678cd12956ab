#!/usr/bin/env python3
"""
Mutator Configuration

This module holds the settings shared by the walker, the initialization
pass and the crossover, with dictionary/JSON conversion for config files.
"""

import json
import logging
from typing import Any, Dict, Optional

from .utils.common import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_RANDOM_TO_DEFAULT_RATIO,
    load_json_file,
    save_json_file,
)

logger = logging.getLogger(__name__)


class MutatorSettings:
    """Configuration of a Mutator."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH,
                 keep_initialized: bool = True,
                 random_to_default_ratio: int = DEFAULT_RANDOM_TO_DEFAULT_RATIO,
                 max_repeated_size: Optional[int] = None):
        """
        Initialize settings.

        Args:
            max_depth: Maximum nesting of sub-messages below the root (> 0)
            keep_initialized: Whether required fields are restored after
                every operation
            random_to_default_ratio: A newly materialized field gets its
                schema default with probability 1/random_to_default_ratio
            max_repeated_size: Upper bound on repeated and map field sizes,
                or None for no bound
        """
        self.max_depth = max_depth
        self.keep_initialized = keep_initialized
        self.random_to_default_ratio = random_to_default_ratio
        self.max_repeated_size = max_repeated_size
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on an invalid combination of settings."""
        if not isinstance(self.max_depth, int) or self.max_depth <= 0:
            raise ValueError(f"max_depth must be a positive integer, got {self.max_depth!r}")
        if (not isinstance(self.random_to_default_ratio, int)
                or self.random_to_default_ratio <= 0):
            raise ValueError("random_to_default_ratio must be a positive integer, "
                             f"got {self.random_to_default_ratio!r}")
        if self.max_repeated_size is not None and (
                not isinstance(self.max_repeated_size, int) or self.max_repeated_size <= 0):
            raise ValueError("max_repeated_size must be a positive integer or None, "
                             f"got {self.max_repeated_size!r}")
        self.keep_initialized = bool(self.keep_initialized)

    def update(self, max_depth: Optional[int] = None,
               keep_initialized: Optional[bool] = None,
               random_to_default_ratio: Optional[int] = None,
               max_repeated_size: Optional[int] = None) -> None:
        """Change the given settings in place; omitted ones are kept."""
        previous = self.to_dict()
        if max_depth is not None:
            self.max_depth = max_depth
        if keep_initialized is not None:
            self.keep_initialized = keep_initialized
        if random_to_default_ratio is not None:
            self.random_to_default_ratio = random_to_default_ratio
        if max_repeated_size is not None:
            self.max_repeated_size = max_repeated_size
        try:
            self.validate()
        except ValueError:
            self._assign(previous)
            raise
        logger.debug(f"Mutator settings updated: {self.to_dict()}")

    def _assign(self, data: Dict[str, Any]) -> None:
        self.max_depth = data["max_depth"]
        self.keep_initialized = data["keep_initialized"]
        self.random_to_default_ratio = data["random_to_default_ratio"]
        self.max_repeated_size = data["max_repeated_size"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_depth": self.max_depth,
            "keep_initialized": self.keep_initialized,
            "random_to_default_ratio": self.random_to_default_ratio,
            "max_repeated_size": self.max_repeated_size,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MutatorSettings':
        """Create settings from a dictionary; unknown keys are rejected."""
        unknown = set(data) - {"max_depth", "keep_initialized",
                               "random_to_default_ratio", "max_repeated_size"}
        if unknown:
            raise ValueError(f"Unknown mutator settings: {', '.join(sorted(unknown))}")
        return cls(
            max_depth=data.get("max_depth", DEFAULT_MAX_DEPTH),
            keep_initialized=data.get("keep_initialized", True),
            random_to_default_ratio=data.get("random_to_default_ratio",
                                             DEFAULT_RANDOM_TO_DEFAULT_RATIO),
            max_repeated_size=data.get("max_repeated_size"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'MutatorSettings':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, file_path: str) -> 'MutatorSettings':
        """Read settings from a JSON file."""
        return cls.from_dict(load_json_file(file_path))

    def save(self, file_path: str) -> str:
        """Write settings to a JSON file readable by load()."""
        return save_json_file(self.to_dict(), file_path)

    def __repr__(self):
        return f"MutatorSettings({self.to_dict()})"
