"""
Custom exception classes for soundpack-ctrl.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from soundpack_ctrl.core.structure import ValidationReport


class SoundPackError(Exception):
    """Base exception class for soundpack-ctrl errors."""
    pass


class InvalidPackIdError(SoundPackError):
    """Raised when a pack id is empty or contains characters outside [a-z0-9-]."""
    pass


class ArchiveUnreadableError(SoundPackError):
    """Raised when an archive is corrupt, encrypted or uses unsupported compression."""
    pass


class StructuralViolationError(SoundPackError):
    """Raised when the pre-extraction audit rejects an archive."""

    def __init__(self, report: "ValidationReport") -> None:
        self.report = report
        count = len(report.violations)
        super().__init__(f"Archive rejected with {count} structural violation(s)")


class ExtractionFailedError(SoundPackError):
    """Raised when an approved archive cannot be extracted into scratch space."""
    pass


class ContentRejectedError(SoundPackError):
    """Raised when a single file fails the audio admission checks."""
    pass


class InstallFailedError(SoundPackError):
    """Raised when a sanitized pack cannot be published to the live directory."""
    pass


class PackNotFoundError(SoundPackError):
    """Raised when a pack id is neither installed nor listed in a registry."""
    pass


class PackAlreadyExistsError(SoundPackError):
    """Raised when creating a pack whose id is already installed."""
    pass


class DownloadError(SoundPackError):
    """Raised when an archive download fails (bad URL, status, timeout, short read)."""
    pass


class DownloadCancelledError(DownloadError):
    """Raised when a download is cancelled by the caller."""
    pass


class CorruptedPackDatabaseError(SoundPackError):
    """Raised when the installed packs JSON file is corrupted."""
    pass


class CorruptedManifestError(SoundPackError):
    """Raised when a registry manifest cannot be parsed."""
    pass
