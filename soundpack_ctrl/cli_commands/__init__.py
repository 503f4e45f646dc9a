"""Registry for CLI subcommands."""

from .packs_command import PacksCommand
from .sounds_command import SoundsCommand
from .update_scheduler_command import UpdateSchedulerCommand
from .validate_command import ValidateCommand

COMMANDS = (
    ValidateCommand,
    PacksCommand,
    SoundsCommand,
    UpdateSchedulerCommand,
)

__all__ = ["COMMANDS", "PacksCommand", "SoundsCommand", "UpdateSchedulerCommand", "ValidateCommand"]
