"""Extraction of structurally approved archives into scratch space."""

from __future__ import annotations

import shutil
import tempfile
import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from soundpack_ctrl.common.constants import COPY_CHUNK_SIZE, MAX_FILE_SIZE, STAGING_PREFIX
from soundpack_ctrl.common.errors import ArchiveUnreadableError, ExtractionFailedError
from soundpack_ctrl.common.logging_config import get_logger

from .archive import ArchiveSource, EntryKind, check_member_readable, entry_kind, open_archive

_log = get_logger(__name__)


@contextmanager
def scratch_directory(parent: Path, pack_id: str) -> Iterator[Path]:
    """Create a private, uniquely named scratch directory and always remove it.

    The directory lives under ``parent`` (the live root) so that publishing
    it later is a same-volume rename.
    """
    parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"{STAGING_PREFIX}{pack_id}-", dir=parent))
    try:
        yield path
    finally:
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)
            _log.debug("Discarded scratch directory %s", path)


def _member_target(dest_root: Path, name: str) -> Path:
    target = (dest_root / name).resolve()
    if target != dest_root and dest_root not in target.parents:
        raise ExtractionFailedError(f"Unsafe archive member path detected: {name!r}")
    return target


def _copy_capped(zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> None:
    # Writing one byte past the limit lets the sanitizer see the file as oversize.
    limit = MAX_FILE_SIZE + 1
    written = 0
    with zf.open(info, "r") as source, target.open("xb") as dest:
        while written < limit:
            chunk = source.read(min(COPY_CHUNK_SIZE, limit - written))
            if not chunk:
                break
            dest.write(chunk)
            written += len(chunk)
    if written >= limit:
        _log.info("Truncated oversize archive member %s at %d bytes", info.filename, written)


def extract_archive(source: ArchiveSource, destination: Path) -> int:
    """Extract regular files and directories of ``source`` under ``destination``.

    Symlink members are never materialized and no permission bits from the
    archive are applied.

    Returns:
        Number of files written

    Raises:
        ExtractionFailedError: On any error while extracting
    """
    dest_root = destination.resolve()
    files_written = 0
    try:
        with open_archive(source) as zf:
            for info in zf.infolist():
                check_member_readable(info)
                kind = entry_kind(info)
                if kind is EntryKind.SYMLINK:
                    _log.warning("Skipping symlink archive member %s", info.filename)
                    continue
                target = _member_target(dest_root, info.filename)
                if kind is EntryKind.DIRECTORY:
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                _copy_capped(zf, info, target)
                files_written += 1
    except ExtractionFailedError:
        raise
    except (ArchiveUnreadableError, zipfile.BadZipFile, zlib.error, EOFError, RuntimeError,
            NotImplementedError, OSError) as exc:
        raise ExtractionFailedError(f"Archive extraction failed: {exc}") from exc

    _log.debug("Extracted %d files into %s", files_written, destination)
    return files_written


__all__ = ["extract_archive", "scratch_directory"]
