"""Standalone archive validation for the soundpack-ctrl CLI."""

import sys

from soundpack_ctrl.cli_helpers import exit_with_error, map_exception_to_exit_code
from soundpack_ctrl.common.constants import ExitCodes
from soundpack_ctrl.common.errors import ArchiveUnreadableError, InvalidPackIdError
from soundpack_ctrl.core.validation import validate_archive


class ValidateCommand:
    """Validates a pack archive without installing it."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add validate command parser to subparsers."""
        parser = subparsers.add_parser(
            'validate',
            help='Check a pack ZIP for structural and content violations',
        )
        parser.add_argument('archive', help='Path to the pack ZIP file')
        parser.add_argument('pack_id', help='Expected pack id (top-level directory)')
        parser.set_defaults(func=ValidateCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Print one line per violation; silent with exit status 0 on success."""
        try:
            report = validate_archive(args.archive, args.pack_id)
        except (ArchiveUnreadableError, InvalidPackIdError) as exc:
            exit_with_error(str(exc), map_exception_to_exit_code(exc) or ExitCodes.VALIDATION_FAILED)
            return

        if report.passed:
            return
        for message in report.messages():
            print(message)
        sys.exit(ExitCodes.VALIDATION_FAILED)
