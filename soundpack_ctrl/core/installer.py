"""End-to-end pack installation.

raw archive -> listing -> structural audit -> extraction into scratch ->
sanitizing in place -> atomic publish. Every stage either succeeds or raises
one of the pipeline errors; scratch state is discarded on every exit path.
"""

from __future__ import annotations

import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from soundpack_ctrl.common.config import SoundPackSettings
from soundpack_ctrl.common.constants import DEFAULT_DOWNLOAD_TIMEOUT, validate_pack_id
from soundpack_ctrl.common.errors import (
    CorruptedPackDatabaseError,
    DownloadCancelledError,
    ExtractionFailedError,
    SoundPackError,
    StructuralViolationError,
)
from soundpack_ctrl.common.logging_config import get_logger

from .archive import ArchiveSource, list_entries
from .database import PackDatabase, PackRecord
from .download import ProgressCallback, download_archive
from .extract import extract_archive, scratch_directory
from .manifest import PackInfo, record_for
from .publish import publish_pack
from .sanitize import sanitize_pack_directory
from .structure import ValidationReport, audit_entries

_log = get_logger(__name__)


@dataclass
class InstallResult:
    pack_id: str
    path: Path
    files_installed: int
    files_removed: int


def _rewind(source: ArchiveSource) -> None:
    seek = getattr(source, "seek", None)
    if callable(seek):
        seek(0)


def _count_files(pack_dir: Path) -> int:
    return sum(1 for path in pack_dir.rglob("*") if path.is_file())


class PackInstaller:
    """Installs packs from archives or URLs into a sounds directory."""

    def __init__(
        self,
        sounds_dir: Path,
        database: Optional[PackDatabase] = None,
        timeout: int = DEFAULT_DOWNLOAD_TIMEOUT,
    ) -> None:
        self.sounds_dir = Path(sounds_dir)
        self._database = database
        self.timeout = timeout

    @staticmethod
    def from_settings(settings: Optional[SoundPackSettings] = None) -> "PackInstaller":
        settings = settings or SoundPackSettings()
        return PackInstaller(settings.sounds_dir(), timeout=settings.download_timeout())

    @property
    def database(self) -> PackDatabase:
        if self._database is None:
            self._database = PackDatabase.for_sounds_dir(self.sounds_dir)
        return self._database

    def audit(self, source: ArchiveSource, pack_id: str) -> ValidationReport:
        """List ``source`` and run the structural rules for ``pack_id``."""
        validate_pack_id(pack_id)
        _rewind(source)
        return audit_entries(list_entries(source), pack_id)

    def install_archive(
        self,
        source: ArchiveSource,
        pack_id: str,
        record: Optional[PackRecord] = None,
    ) -> InstallResult:
        """Audit, extract, sanitize and publish one archive.

        Raises:
            InvalidPackIdError: If ``pack_id`` is not a safe path component
            ArchiveUnreadableError: If the archive cannot be listed
            StructuralViolationError: If any entry breaks a structural rule
            ExtractionFailedError: If extraction or sanitizing fails
            InstallFailedError: If the sanitized pack cannot be published
        """
        report = self.audit(source, pack_id)
        if not report.passed:
            raise StructuralViolationError(report)

        with scratch_directory(self.sounds_dir, pack_id) as scratch:
            _rewind(source)
            extract_archive(source, scratch)
            staged = scratch / pack_id
            if not staged.is_dir() or staged.is_symlink():
                raise ExtractionFailedError(f"Archive does not contain a '{pack_id}' directory")
            try:
                removed = sanitize_pack_directory(staged)
            except OSError as exc:
                raise ExtractionFailedError(f"Could not sanitize extracted pack: {exc}") from exc
            installed = _count_files(staged)
            live_dir = publish_pack(staged, self.sounds_dir, pack_id)

        if installed == 0:
            _log.warning("Pack %s was installed without any playable sound files", pack_id)
        try:
            self.database.record_install(record or PackRecord(pack_id=pack_id, name=pack_id))
        except (CorruptedPackDatabaseError, OSError) as exc:
            _log.warning("Pack %s installed but its metadata was not recorded: %s", pack_id, exc)
        _log.info("Installed pack %s (%d files, %d removed)", pack_id, installed, removed)
        return InstallResult(pack_id=pack_id, path=live_dir, files_installed=installed, files_removed=removed)

    def install_from_url(
        self,
        url: str,
        pack_id: str,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        record: Optional[PackRecord] = None,
    ) -> bool:
        """Download ``url`` and install it; every failure is logged and returns False."""
        try:
            validate_pack_id(pack_id)
            self.sounds_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(prefix=".download-", dir=self.sounds_dir) as tmp_dir:
                archive = Path(tmp_dir) / f"{pack_id}.zip"
                download_archive(url, archive, progress=progress, cancel_event=cancel_event, timeout=self.timeout)
                if cancel_event is not None and cancel_event.is_set():
                    raise DownloadCancelledError(f"Download cancelled: {url}")
                self.install_archive(archive, pack_id, record=record or PackRecord(pack_id=pack_id, source=url))
            return True
        except DownloadCancelledError:
            _log.info("Installation of %s cancelled", pack_id)
            return False
        except StructuralViolationError as exc:
            _log.error("Pack %s rejected: %s", pack_id, exc)
            for message in exc.report.messages():
                _log.error("  %s", message)
            return False
        except (SoundPackError, OSError) as exc:
            _log.error("Could not install pack %s from %s: %s", pack_id, url, exc)
            return False

    def install_pack_info(
        self,
        info: PackInfo,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        if not info.download_url:
            _log.error("Pack %s has no download URL", info.id)
            return False
        return self.install_from_url(
            info.download_url, info.id, progress=progress, cancel_event=cancel_event, record=record_for(info)
        )


class DownloadTask:
    """Background download-and-install of one pack with progress and cancellation."""

    def __init__(
        self,
        installer: PackInstaller,
        url: str,
        pack_id: str,
        record: Optional[PackRecord] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.installer = installer
        self.url = url
        self.pack_id = pack_id
        self.record = record
        self.progress = 0.0
        self._on_progress = on_progress
        self._cancel_event = threading.Event()
        self._result: Optional[bool] = None
        self._thread = threading.Thread(target=self._run, name=f"pack-download-{pack_id}", daemon=True)

    def start(self) -> "DownloadTask":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._result is not None

    def wait(self, timeout: Optional[float] = None) -> Optional[bool]:
        """Block until the task finishes; returns its outcome or None on timeout."""
        self._thread.join(timeout)
        return self._result

    def _report(self, fraction: float) -> None:
        self.progress = fraction
        if self._on_progress is not None:
            self._on_progress(fraction)

    def _run(self) -> None:
        try:
            self._result = self.installer.install_from_url(
                self.url,
                self.pack_id,
                progress=self._report,
                cancel_event=self._cancel_event,
                record=self.record,
            )
        except Exception:  # pragma: no cover
            _log.exception("Unexpected failure while installing %s", self.pack_id)
            self._result = False


__all__ = ["DownloadTask", "InstallResult", "PackInstaller"]
