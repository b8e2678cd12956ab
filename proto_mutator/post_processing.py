#!/usr/bin/env python3
"""
Post-Processor Registry for the Protobuf Mutator

Callbacks registered against a message type run after every mutation for
each instance of that type found in the tree, bottom-up. A callback receives
the message and a seed for any randomness of its own:

    def fix_checksum(message, seed):
        message.checksum = compute_checksum(message)

    mutator.register_post_processor(Packet.DESCRIPTOR, fix_checksum)
"""

import logging
from typing import Callable, Dict, List, Tuple

from google.protobuf.message import Message

from . import schema

logger = logging.getLogger(__name__)

PostProcessor = Callable[[Message, int], None]


def descriptor_name(descriptor) -> str:
    """Stable identifier of a message type; accepts a descriptor or a message class."""
    descriptor = getattr(descriptor, "DESCRIPTOR", descriptor)
    return descriptor.full_name


class PostProcessorRegistry:
    """Multimap from message type to callbacks, in registration order."""

    def __init__(self):
        self._callbacks: Dict[str, List[PostProcessor]] = {}

    def register(self, descriptor, callback: PostProcessor) -> None:
        """Append a callback for a message type; earlier registrations stay."""
        if not callable(callback):
            raise TypeError(f"Post-processor must be callable, got {type(callback).__name__}")
        name = descriptor_name(descriptor)
        self._callbacks.setdefault(name, []).append(callback)
        logger.debug(f"Registered post-processor {getattr(callback, '__name__', callback)} for {name}")

    def callbacks_for(self, descriptor) -> Tuple[PostProcessor, ...]:
        return tuple(self._callbacks.get(descriptor_name(descriptor), ()))

    def descriptors(self) -> List[str]:
        return list(self._callbacks)

    def __contains__(self, descriptor) -> bool:
        return descriptor_name(descriptor) in self._callbacks

    def __len__(self) -> int:
        return sum(len(callbacks) for callbacks in self._callbacks.values())

    def apply(self, message: Message, random_engine) -> None:
        """Run the registered callbacks over the tree, children before parents."""
        for child in list(schema.iter_child_messages(message)):
            self.apply(child, random_engine)

        for callback in self._callbacks.get(message.DESCRIPTOR.full_name, ()):
            callback(message, random_engine.random_seed())
