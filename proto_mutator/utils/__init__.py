"""
Utility helpers for the protobuf mutator: logging setup and shared constants.
"""

from .logger import setup_logger, log_environment
