"""
Command Line Interface for soundpack-ctrl.

Provides CLI commands for validating, installing and managing sound packs.
"""

import argparse
import sys
from typing import List, Optional

from .cli_commands import COMMANDS
from .common.config import SoundPackSettings
from .common.constants import ExitCodes
from .common.logging_config import configure_logging, get_logger


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='soundpack-ctrl',
        description='Sound pack installer and manager for coding-assistant notification sounds'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    for command in COMMANDS:
        command.add_parser(subparsers)

    return parser


def main(args: Optional[List[str]] = None, settings: Optional[SoundPackSettings] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
        settings: Settings to use instead of reading the process environment
    """
    configure_logging()
    logger = get_logger(__name__)
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    if not args:
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)
    parsed_args.settings = settings if settings is not None else SoundPackSettings()
    logger.debug("Using sounds directory %s", parsed_args.settings.sounds_dir())

    if hasattr(parsed_args, 'func'):
        parsed_args.func(parsed_args)
    else:
        parser.print_help()
        sys.exit(ExitCodes.OK)


if __name__ == '__main__':
    main()
