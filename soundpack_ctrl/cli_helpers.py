"""Shared CLI helpers for soundpack-ctrl commands."""

import sys
from typing import Optional

from soundpack_ctrl.common.config import SoundPackSettings
from soundpack_ctrl.common.constants import ExitCodes
from soundpack_ctrl.common.errors import (
    ArchiveUnreadableError,
    ContentRejectedError,
    CorruptedManifestError,
    CorruptedPackDatabaseError,
    DownloadError,
    ExtractionFailedError,
    InstallFailedError,
    InvalidPackIdError,
    PackAlreadyExistsError,
    PackNotFoundError,
    StructuralViolationError,
)


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to soundpack-ctrl exit codes."""
    if isinstance(exc, StructuralViolationError):
        return ExitCodes.VALIDATION_FAILED
    if isinstance(exc, ArchiveUnreadableError):
        return ExitCodes.ARCHIVE_UNREADABLE
    if isinstance(exc, ExtractionFailedError):
        return ExitCodes.EXTRACTION_FAILED
    if isinstance(exc, InstallFailedError):
        return ExitCodes.INSTALL_FAILED
    if isinstance(exc, InvalidPackIdError):
        return ExitCodes.INVALID_PACK_ID
    if isinstance(exc, DownloadError):
        return ExitCodes.DOWNLOAD_FAILED
    if isinstance(exc, ContentRejectedError):
        return ExitCodes.FILE_REJECTED
    if isinstance(exc, PackNotFoundError):
        return ExitCodes.PACK_NOT_FOUND
    if isinstance(exc, PackAlreadyExistsError):
        return ExitCodes.PACK_ALREADY_EXISTS
    if isinstance(exc, CorruptedPackDatabaseError):
        return ExitCodes.CORRUPTED_PACK_DATABASE
    if isinstance(exc, CorruptedManifestError):
        return ExitCodes.CORRUPTED_MANIFEST
    return None


def settings_from_args(args) -> SoundPackSettings:
    settings = getattr(args, "settings", None)
    if not isinstance(settings, SoundPackSettings):
        settings = SoundPackSettings()
    return settings
