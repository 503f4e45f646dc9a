"""Read-only listing of pack archives.

Only ZIP archives are accepted. Listing inspects the central directory and
never writes to disk.
"""

from __future__ import annotations

import io
import stat
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from soundpack_ctrl.common.errors import ArchiveUnreadableError
from soundpack_ctrl.common.logging_config import get_logger

ArchiveSource = Union[str, Path, bytes, bytearray, BinaryIO]

_SUPPORTED_COMPRESSION = frozenset({
    zipfile.ZIP_STORED,
    zipfile.ZIP_DEFLATED,
    zipfile.ZIP_BZIP2,
    zipfile.ZIP_LZMA,
})
_FLAG_ENCRYPTED = 0x1

_log = get_logger(__name__)


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class ArchiveEntry:
    """A single archive member as stored in the archive."""

    path: str
    kind: EntryKind
    size: Optional[int] = None


def open_archive(source: ArchiveSource) -> zipfile.ZipFile:
    """Open ``source`` as a ZIP archive, mapping failures to ArchiveUnreadableError."""
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))
    try:
        return zipfile.ZipFile(source, "r")
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, ValueError) as exc:
        raise ArchiveUnreadableError(f"Archive is corrupt or not a ZIP file: {exc}") from exc
    except OSError as exc:
        raise ArchiveUnreadableError(f"Archive cannot be read: {exc}") from exc


def entry_kind(info: zipfile.ZipInfo) -> EntryKind:
    """Classify a member from its stored Unix mode and name."""
    mode = info.external_attr >> 16
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if info.filename.endswith("/") or stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.FILE


def check_member_readable(info: zipfile.ZipInfo) -> None:
    """Reject encrypted members and compression methods zipfile cannot decode."""
    if info.flag_bits & _FLAG_ENCRYPTED:
        raise ArchiveUnreadableError(f"Archive entry is encrypted: {info.filename!r}")
    if info.compress_type not in _SUPPORTED_COMPRESSION:
        raise ArchiveUnreadableError(
            f"Archive entry uses unsupported compression method {info.compress_type}: {info.filename!r}"
        )


def entries_from_zip(zf: zipfile.ZipFile) -> List[ArchiveEntry]:
    entries: List[ArchiveEntry] = []
    for info in zf.infolist():
        check_member_readable(info)
        kind = entry_kind(info)
        size = info.file_size if kind is EntryKind.FILE else None
        entries.append(ArchiveEntry(path=info.filename, kind=kind, size=size))
    return entries


def list_entries(source: ArchiveSource) -> List[ArchiveEntry]:
    """List the entries of a ZIP archive in stored order.

    Args:
        source: Path to the archive, its raw bytes, or a seekable binary file

    Returns:
        One ArchiveEntry per member

    Raises:
        ArchiveUnreadableError: If the archive is corrupt, encrypted or uses
            an unsupported compression method
    """
    with open_archive(source) as zf:
        entries = entries_from_zip(zf)
    _log.debug("Listed %d archive entries", len(entries))
    return entries


__all__ = [
    "ArchiveEntry",
    "ArchiveSource",
    "EntryKind",
    "check_member_readable",
    "entries_from_zip",
    "entry_kind",
    "list_entries",
    "open_archive",
]
