"""Standalone two-phase validation of a pack archive.

Phase one is the structural audit. Phase two applies the content rules to
each file entry by reading it straight out of the archive, so it can run even
when phase one failed and never writes untrusted bytes to disk.
"""

from __future__ import annotations

import zipfile
import zlib
from typing import Tuple

from soundpack_ctrl.common.constants import (
    ALLOWED_EXTENSIONS,
    COPY_CHUNK_SIZE,
    EVENT_NAME_SET,
    HEADER_LENGTH,
    MAX_FILE_SIZE,
    file_extension,
    validate_pack_id,
)
from soundpack_ctrl.common.errors import ArchiveUnreadableError
from soundpack_ctrl.common.logging_config import get_logger

from .archive import ArchiveSource, EntryKind, entries_from_zip, entry_kind, open_archive
from .signatures import detect_format
from .structure import ValidationReport, ViolationKind, audit_entries, is_absolute, is_traversal

_log = get_logger(__name__)


def _measure(zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> Tuple[bytes, int]:
    """Return (leading bytes, size read) with reading capped past the size limit."""
    limit = MAX_FILE_SIZE + 1
    header = b""
    size = 0
    with zf.open(info, "r") as stream:
        while size < limit:
            chunk = stream.read(min(COPY_CHUNK_SIZE, limit - size))
            if not chunk:
                break
            if len(header) < HEADER_LENGTH:
                header += chunk[: HEADER_LENGTH - len(header)]
            size += len(chunk)
    return header, size


def audit_archive_content(zf: zipfile.ZipFile, pack_id: str) -> ValidationReport:
    """Content rules for every file entry located under the pack root."""
    report = ValidationReport()
    for info in zf.infolist():
        path = info.filename
        if entry_kind(info) is not EntryKind.FILE or is_traversal(path) or is_absolute(path):
            continue
        segments = [segment for segment in path.split("/") if segment]
        if not segments or segments[0] != pack_id:
            continue
        if len(segments) != 3:
            report.add(ViolationKind.MISPLACED_FILE, path)
            continue
        if segments[1] not in EVENT_NAME_SET or file_extension(segments[2]) not in ALLOWED_EXTENSIONS:
            continue
        if info.file_size > MAX_FILE_SIZE:
            report.add(ViolationKind.FILE_TOO_LARGE, path)
            continue
        try:
            header, size = _measure(zf, info)
        except (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError) as exc:
            raise ArchiveUnreadableError(f"Archive entry cannot be decompressed: {path!r}: {exc}") from exc
        if size > MAX_FILE_SIZE:
            report.add(ViolationKind.FILE_TOO_LARGE, path)
        elif detect_format(header) is None:
            report.add(ViolationKind.UNRECOGNIZED_SIGNATURE, path)
    return report


def validate_archive(source: ArchiveSource, pack_id: str) -> ValidationReport:
    """Run both validation phases and return every violation found.

    Raises:
        InvalidPackIdError: If ``pack_id`` is not a valid pack id
        ArchiveUnreadableError: If the archive cannot be listed or decompressed
    """
    validate_pack_id(pack_id)
    with open_archive(source) as zf:
        report = audit_entries(entries_from_zip(zf), pack_id)
        content = audit_archive_content(zf, pack_id)
    report.extend(content)
    if report.passed:
        _log.debug("Archive for %s passed validation", pack_id)
    else:
        _log.debug("Archive for %s failed validation with %d violation(s)", pack_id, len(report.violations))
    return report


__all__ = ["audit_archive_content", "validate_archive"]
