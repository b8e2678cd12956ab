#!/usr/bin/env python3
"""
Protobuf Mutator CLI Tool

This script provides a command-line interface for generating mutated
protobuf messages from seed files, e.g. to build or extend a fuzzing corpus.
"""

import os
import sys
import argparse
import importlib
import logging

from google.protobuf import text_format
from google.protobuf.message import DecodeError, Message

from .config import MutatorSettings
from .mutator import Mutator
from .utils.common import (
    DEFAULT_MUTATION_COUNT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SEED,
    DEFAULT_SIZE_INCREASE_HINT,
    SUPPORTED_FORMATS,
    detect_message_format,
    ensure_dir,
    parse_size_string,
)
from .utils.logger import setup_logger

logger = logging.getLogger(__name__)


def setup_argparse():
    """Set up command-line argument parsing."""
    parser = argparse.ArgumentParser(
        prog='proto-mutator',
        description='Structure-aware protobuf mutator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write 100 mutations of a text-format seed
  proto-mutator mutate mypkg.messages_pb2:Request seed.textproto --count 100

  # Chain mutations, keeping outputs below 4K
  proto-mutator mutate mypkg.messages_pb2:Request seed.bin --chain --max-size 4K

  # Cross two seeds over
  proto-mutator crossover mypkg.messages_pb2:Request a.bin b.bin --output merged.bin
  """
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--log-dir', help='Directory for rotating log files')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('message_type', help='Message class as module.path:ClassName')
    common.add_argument('--seed', type=int, default=DEFAULT_SEED,
                        help=f'Random seed (default: {DEFAULT_SEED})')
    common.add_argument('--config', help='JSON file with mutator settings')
    common.add_argument('--max-depth', type=int, help='Maximum message nesting depth')
    common.add_argument('--max-repeated-size', type=int,
                        help='Maximum number of elements in repeated and map fields')
    common.add_argument('--no-keep-initialized', action='store_true',
                        help='Do not fill in missing required fields')
    common.add_argument('--format', choices=SUPPORTED_FORMATS, default='auto',
                        help='Seed and output format (default: auto-detect by extension)')

    # Mutate command
    mutate_parser = subparsers.add_parser('mutate', parents=[common],
                                          help='Generate mutations of a seed message')
    mutate_parser.add_argument('seed_file', help='Seed message file')
    mutate_parser.add_argument('--count', type=int, default=DEFAULT_MUTATION_COUNT,
                               help=f'Number of mutations to write (default: {DEFAULT_MUTATION_COUNT})')
    size_group = mutate_parser.add_mutually_exclusive_group()
    size_group.add_argument('--size-hint', type=int, default=DEFAULT_SIZE_INCREASE_HINT,
                            help=f'Size increase hint in bytes (default: {DEFAULT_SIZE_INCREASE_HINT})')
    size_group.add_argument('--max-size',
                            help='Target maximum serialized size, e.g. 512 or 4K')
    mutate_parser.add_argument('--chain', action='store_true',
                               help='Mutate each output again instead of restarting from the seed')
    mutate_parser.add_argument('--output-dir', default=DEFAULT_OUTPUT_DIR,
                               help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})')

    # Crossover command
    cross_parser = subparsers.add_parser('crossover', parents=[common],
                                         help='Cross two messages over')
    cross_parser.add_argument('first', help='Message whose content is merged in')
    cross_parser.add_argument('second', help='Message that receives the content')
    cross_parser.add_argument('--output', required=True, help='Output file')

    return parser


def load_message_class(type_path):
    """
    Resolve 'module.path:ClassName' to a protobuf message class.

    Raises:
        ValueError: If the path is malformed or does not name a message class
    """
    module_name, sep, class_name = type_path.partition(':')
    if not sep or not module_name or not class_name:
        raise ValueError(f"Message type must look like module.path:ClassName, got {type_path!r}")

    module = importlib.import_module(module_name)
    message_class = module
    for part in class_name.split('.'):
        message_class = getattr(message_class, part, None)
        if message_class is None:
            raise ValueError(f"{module_name} has no attribute {class_name}")

    if not (isinstance(message_class, type) and issubclass(message_class, Message)):
        raise ValueError(f"{type_path} is not a protobuf message class")
    return message_class


def resolve_format(file_path, requested):
    if requested == 'auto':
        return detect_message_format(file_path)
    return requested


def read_message(message_class, file_path, file_format='auto'):
    """Parse a message from a text-format or binary file."""
    file_format = resolve_format(file_path, file_format)
    message = message_class()
    if file_format == 'text':
        with open(file_path, 'r', encoding='utf-8') as f:
            text_format.Parse(f.read(), message)
    else:
        with open(file_path, 'rb') as f:
            message.ParseFromString(f.read())
    logger.debug(f"Read {message.DESCRIPTOR.full_name} from {file_path} ({file_format})")
    return message


def write_message(message, file_path, file_format='auto'):
    """Write a message as text format or deterministic binary."""
    file_format = resolve_format(file_path, file_format)
    if file_format == 'text':
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(text_format.MessageToString(message))
    else:
        with open(file_path, 'wb') as f:
            f.write(message.SerializeToString(deterministic=True))
    return file_path


def build_mutator(args):
    """Create a Mutator from --config and the per-flag overrides."""
    settings = MutatorSettings.load(args.config) if args.config else MutatorSettings()
    settings.update(max_depth=args.max_depth,
                    max_repeated_size=args.max_repeated_size,
                    keep_initialized=False if args.no_keep_initialized else None)
    logger.debug(f"Using {settings!r}")
    return Mutator(seed=args.seed, settings=settings)


def generate_mutations(mutator, seed_message, count, size_increase_hint=None,
                       max_size=None, chain=False):
    """
    Yield count mutated messages derived from seed_message.

    Args:
        mutator: Mutator to use
        seed_message: Starting message; never modified
        count: Number of messages to produce
        size_increase_hint: Hint passed to every mutation
        max_size: When set, the hint is derived from the room left below it
        chain: Mutate the previous output instead of a fresh copy of the seed
    """
    current = seed_message
    for _ in range(count):
        message = type(seed_message)()
        message.CopyFrom(current)
        if max_size is not None:
            mutator.mutate_with_max_size(message, max_size)
        else:
            mutator.mutate(message, size_increase_hint)
        if chain:
            current = message
        yield message


def output_extension(file_format):
    return '.textproto' if file_format == 'text' else '.bin'


def command_mutate(args):
    """Run mutate command."""
    message_class = load_message_class(args.message_type)
    seed_message = read_message(message_class, args.seed_file, args.format)
    mutator = build_mutator(args)

    max_size = parse_size_string(args.max_size) if args.max_size else None
    output_format = resolve_format(args.seed_file, args.format)
    extension = output_extension(output_format)
    ensure_dir(args.output_dir)

    logger.info(f"Generating {args.count} mutations of {args.seed_file} into {args.output_dir}")
    written = 0
    for i, message in enumerate(generate_mutations(mutator, seed_message, args.count,
                                                   size_increase_hint=args.size_hint,
                                                   max_size=max_size, chain=args.chain)):
        output_path = os.path.join(args.output_dir, f"mutation_{i:04d}{extension}")
        write_message(message, output_path, output_format)
        written += 1
        logger.debug(f"Wrote {output_path} ({message.ByteSize()} bytes)")

    logger.info(f"Wrote {written} mutations")
    return 0


def command_crossover(args):
    """Run crossover command."""
    message_class = load_message_class(args.message_type)
    first = read_message(message_class, args.first, args.format)
    second = read_message(message_class, args.second, args.format)
    mutator = build_mutator(args)

    mutator.cross_over(first, second)
    write_message(second, args.output, resolve_format(args.second, args.format))
    logger.info(f"Crossover of {args.first} and {args.second} written to {args.output}")
    return 0


def main(argv=None):
    """Main entry point."""
    parser = setup_argparse()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger(name='proto_mutator', log_dir=args.log_dir, level=level,
                 console_level=level, timestamp=False, verbose=args.verbose,
                 stream=sys.stderr)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == 'mutate':
            return command_mutate(args)
        elif args.command == 'crossover':
            return command_crossover(args)
        parser.print_help()
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except (OSError, ValueError, ImportError, DecodeError, text_format.ParseError) as e:
        logger.error(f"Error: {e}")
        if args.verbose:
            logger.exception("Details:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
