"""Sound file management command handling for the soundpack-ctrl CLI."""

import sys
from pathlib import Path

from soundpack_ctrl.cli_helpers import exit_with_error, map_exception_to_exit_code, settings_from_args
from soundpack_ctrl.common.constants import EVENT_NAMES, ExitCodes
from soundpack_ctrl.core.library import PackLibrary


class SoundsCommand:
    """Handles per-event sound file commands."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add sounds command parser to subparsers."""
        parser = subparsers.add_parser('sounds', help='Interface for sound files inside a pack')

        sound_subparsers = parser.add_subparsers(dest='sound_action', help='Sound actions')

        list_parser = sound_subparsers.add_parser('list', help='List sounds of a pack event')
        list_parser.add_argument('pack_id', help='The pack id')
        list_parser.add_argument('event', choices=EVENT_NAMES, help='The event name')

        add_parser = sound_subparsers.add_parser('add', help='Add an audio file to a pack event')
        add_parser.add_argument('pack_id', help='The pack id')
        add_parser.add_argument('event', choices=EVENT_NAMES, help='The event name')
        add_parser.add_argument('file', help='Audio file to add')

        remove_parser = sound_subparsers.add_parser('remove', help='Remove a sound from a pack event')
        remove_parser.add_argument('pack_id', help='The pack id')
        remove_parser.add_argument('event', choices=EVENT_NAMES, help='The event name')
        remove_parser.add_argument('name', help='File name to remove')

        parser.set_defaults(func=SoundsCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Execute a sound management command."""
        try:
            if args.sound_action == 'list':
                SoundsCommand._list_sounds(args)
            elif args.sound_action == 'add':
                SoundsCommand._add_sound(args)
            elif args.sound_action == 'remove':
                SoundsCommand._remove_sound(args)
            else:
                print("Please specify a sound action: list, add, or remove")
                sys.exit(ExitCodes.OK)
        except Exception as exc:
            exit_code = map_exception_to_exit_code(exc)
            if exit_code is None:
                raise
            exit_with_error(str(exc), exit_code)

    @staticmethod
    def _list_sounds(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        files = library.sound_files(args.pack_id, args.event)
        print(f"Sounds for {args.pack_id}/{args.event}:")
        if not files:
            print("  No sounds found.")
            return
        for path in files:
            print(f"  {path.name}")

    @staticmethod
    def _add_sound(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        destination = library.add_sound(args.pack_id, args.event, Path(args.file))
        print(f"Added {destination.name} to {args.pack_id}/{args.event}.")

    @staticmethod
    def _remove_sound(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        if library.remove_sound(args.pack_id, args.event, args.name):
            print(f"Removed {args.name} from {args.pack_id}/{args.event}.")
        else:
            print(f"{args.name} was not found in {args.pack_id}/{args.event}.")
