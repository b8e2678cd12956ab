"""
Common Utilities for the Protobuf Mutator

This module provides constants and small file helpers shared by the
mutation engine and the corpus command-line tool.
"""

import os
import re
import json
import logging

# Get logger
logger = logging.getLogger(__name__)

# Mutation defaults
DEFAULT_SEED = 0
DEFAULT_MAX_DEPTH = 100
DEFAULT_RANDOM_TO_DEFAULT_RATIO = 100
DEFAULT_SIZE_INCREASE_HINT = 64
DEFAULT_MUTATION_COUNT = 20

# Integer boundary injection
BOUNDARY_PROBABILITY = 0.10
LARGE_HINT_BOUNDARY_PROBABILITY = 0.25
LARGE_SIZE_HINT = 64

# Target selection weights
DEFAULT_TARGET_WEIGHT = 4
SMALL_HINT_GROWTH_WEIGHT = 1
SMALL_SIZE_HINT = 16

# Seed file formats
TEXT_FORMAT_EXTENSIONS = ('.txt', '.textproto', '.txtpb', '.pbtxt', '.prototxt')
SUPPORTED_FORMATS = ['auto', 'text', 'binary']

DEFAULT_OUTPUT_DIR = 'mutations'


def ensure_dir(directory):
    """Ensure a directory exists."""
    os.makedirs(directory, exist_ok=True)
    return directory


def load_json_file(file_path):
    """Load a JSON file, logging and re-raising on failure."""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading JSON file {file_path}: {e}")
        raise


def save_json_file(data, file_path, indent=2):
    """Save data to a JSON file."""
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent)
    return file_path


def detect_message_format(file_path):
    """Guess whether a seed file holds text-format or binary protobuf."""
    _, ext = os.path.splitext(file_path)
    if ext.lower() in TEXT_FORMAT_EXTENSIONS:
        return 'text'
    return 'binary'


SIZE_UNITS = {'': 1, 'K': 1 << 10, 'M': 1 << 20, 'G': 1 << 30}


def parse_size_string(size_str):
    """
    Convert a message size limit such as '512', '4K' or '2MB' to bytes.

    Units are binary multiples; a trailing 'B' is optional.
    """
    match = re.fullmatch(r'\s*(\d+)\s*([KMG]?)B?\s*', size_str, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size string: {size_str!r}")
    count, unit = match.groups()
    return int(count) * SIZE_UNITS[unit.upper()]
