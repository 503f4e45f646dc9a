"""Update scheduler command for the soundpack-ctrl CLI."""

from soundpack_ctrl.cli_helpers import settings_from_args
from soundpack_ctrl.core.update_scheduler import run_update_scheduler


class UpdateSchedulerCommand:
    """Internal command to run the pack update scheduler loop."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser(
            'update-scheduler',
            help='Periodically update installed packs (SOUNDPACK_UPDATE_CRON)',
        )
        parser.set_defaults(func=UpdateSchedulerCommand.execute)

    @staticmethod
    def execute(args) -> None:
        run_update_scheduler(settings_from_args(args))
