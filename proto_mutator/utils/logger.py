"""
Logger for the Protobuf Mutator

The library itself only emits records through module loggers under the
'proto_mutator' namespace. This module is used by the CLI to attach
handlers: a colorized console handler and, optionally, a rotating log file.
"""

import os
import sys
import logging
import logging.handlers
import platform
from datetime import datetime

import psutil
from google.protobuf import __version__ as protobuf_version
from google.protobuf.internal import api_implementation

# ANSI color codes for terminal output
COLORS = {
    'BLUE': '\033[94m',
    'GREEN': '\033[92m',
    'WARNING': '\033[93m',
    'FAIL': '\033[91m',
    'ENDC': '\033[0m',
    'BOLD': '\033[1m',
}

LOG_COLORS = {
    'DEBUG': COLORS['BLUE'],
    'INFO': COLORS['GREEN'],
    'WARNING': COLORS['WARNING'],
    'ERROR': COLORS['FAIL'],
    'CRITICAL': COLORS['BOLD'] + COLORS['FAIL']
}

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name, and the message for warnings and errors."""

    def format(self, record):
        # Copy so a file handler sharing the record writes plain text
        record = logging.makeLogRecord(record.__dict__)
        color = LOG_COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{COLORS['ENDC']}"
        if record.levelno >= logging.WARNING:
            record.msg = f"{color}{record.msg}{COLORS['ENDC']}"
        return super().format(record)


def _file_handler(name, log_dir, level, max_log_size, backup_count):
    os.makedirs(log_dir, exist_ok=True)
    started = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
    log_file = os.path.join(log_dir, f"{name}_{started}.log")
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_log_size, backupCount=backup_count
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler, log_file


def log_environment(logger):
    """Log interpreter, protobuf backend and memory figures."""
    logger.info(f"System: {platform.system()} {platform.release()}")
    logger.info(f"Python: {platform.python_version()}")
    logger.info(f"protobuf {protobuf_version} ({api_implementation.Type()} backend)")
    memory = psutil.virtual_memory()
    logger.info(f"Memory: {memory.total / (1024**3):.2f}GB total, "
                f"{memory.available / (1024**3):.2f}GB available "
                f"({memory.percent}% used)")


def setup_logger(name='proto_mutator', log_dir=None, level=logging.INFO,
                 console_level=logging.INFO, log_file_level=logging.DEBUG,
                 max_log_size=10*1024*1024, backup_count=5,
                 timestamp=True, verbose=False, stream=None):
    """
    Attach console and optional file handlers to a logger.

    Args:
        name: Logger name; 'proto_mutator' covers every module of the package
        log_dir: Directory for rotating log files (no file logging when None)
        level: Overall logging level
        console_level: Console output logging level
        log_file_level: Log file logging level
        max_log_size: Maximum size of each log file in bytes (default: 10MB)
        backup_count: Number of backup log files to keep
        timestamp: Whether to include timestamp in console output
        verbose: Whether to log the runtime environment
        stream: Console stream (defaults to stdout)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(console_level)
    console_format = '%(levelname)s - %(message)s'
    if timestamp:
        console_format = '%(asctime)s - ' + console_format
    console_handler.setFormatter(ColoredFormatter(console_format))
    logger.addHandler(console_handler)

    if log_dir:
        file_handler, log_file = _file_handler(name, log_dir, log_file_level,
                                               max_log_size, backup_count)
        logger.addHandler(file_handler)
        logger.info(f"Logging initialized. Log file: {log_file}")

    if verbose:
        log_environment(logger)

    return logger
