"""Pre-extraction structural audit of archive entries.

Every entry is checked against every rule and all violations are collected;
a single violation rejects the whole archive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List

from soundpack_ctrl.common.constants import (
    ALLOWED_EXTENSIONS,
    EVENT_NAME_SET,
    MAX_ENTRY_DEPTH,
    file_extension,
)
from soundpack_ctrl.common.logging_config import get_logger

from .archive import ArchiveEntry, EntryKind

_SEGMENT_SPLIT = re.compile(r"[\\/]")
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")

_log = get_logger(__name__)


class ViolationKind(Enum):
    PATH_TRAVERSAL = "PathTraversal"
    ABSOLUTE_PATH = "AbsolutePath"
    SYMLINK_NOT_ALLOWED = "SymlinkNotAllowed"
    TOO_DEEP = "TooDeep"
    UNEXPECTED_ROOT = "UnexpectedRoot"
    INVALID_EVENT = "InvalidEvent"
    DISALLOWED_EXTENSION = "DisallowedExtension"
    # Content findings reported by the standalone validator.
    MISPLACED_FILE = "MisplacedFile"
    FILE_TOO_LARGE = "FileTooLarge"
    UNRECOGNIZED_SIGNATURE = "UnrecognizedSignature"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    path: str

    def message(self) -> str:
        return f"{self.kind.value}: {self.path}"


@dataclass
class ValidationReport:
    """Ordered violations found by an audit run; passes when empty."""

    violations: List[Violation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def add(self, kind: ViolationKind, path: str) -> None:
        self.violations.append(Violation(kind, path))

    def extend(self, other: "ValidationReport") -> None:
        self.violations.extend(other.violations)

    def kinds(self) -> List[ViolationKind]:
        return [violation.kind for violation in self.violations]

    def messages(self) -> List[str]:
        return [violation.message() for violation in self.violations]


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def is_traversal(path: str) -> bool:
    """True for a `..` segment or a `../` sequence anywhere in the path."""
    if "../" in path.replace("\\", "/"):
        return True
    return any(segment == ".." for segment in _SEGMENT_SPLIT.split(path))


def is_absolute(path: str) -> bool:
    return path.startswith(("/", "\\")) or bool(_DRIVE_PREFIX.match(path))


def audit_entry(entry: ArchiveEntry, pack_id: str, report: ValidationReport) -> None:
    """Append every violation of ``entry`` to ``report``."""
    path = entry.path
    if is_traversal(path):
        report.add(ViolationKind.PATH_TRAVERSAL, path)
    if is_absolute(path):
        report.add(ViolationKind.ABSOLUTE_PATH, path)
    if entry.kind is EntryKind.SYMLINK:
        report.add(ViolationKind.SYMLINK_NOT_ALLOWED, path)
    if path.count("/") > MAX_ENTRY_DEPTH:
        report.add(ViolationKind.TOO_DEEP, path)

    segments = _segments(path)
    if not segments or segments[0] != pack_id:
        report.add(ViolationKind.UNEXPECTED_ROOT, path)

    if entry.kind is EntryKind.FILE and len(segments) == 3:
        if segments[1] not in EVENT_NAME_SET:
            report.add(ViolationKind.INVALID_EVENT, path)
        if file_extension(segments[2]) not in ALLOWED_EXTENSIONS:
            report.add(ViolationKind.DISALLOWED_EXTENSION, path)


def audit_entries(entries: Iterable[ArchiveEntry], pack_id: str) -> ValidationReport:
    """Run the structural rules over every entry of an archive listing.

    Args:
        entries: Entries as returned by :func:`list_entries`
        pack_id: Expected top-level directory name

    Returns:
        A report holding every violation in entry order
    """
    report = ValidationReport()
    count = 0
    for entry in entries:
        audit_entry(entry, pack_id, report)
        count += 1
    if report.passed:
        _log.debug("Structural audit passed for %s (%d entries)", pack_id, count)
    else:
        _log.debug(
            "Structural audit rejected %s: %d violation(s) across %d entries",
            pack_id,
            len(report.violations),
            count,
        )
    return report


__all__ = [
    "ValidationReport",
    "Violation",
    "ViolationKind",
    "audit_entries",
    "audit_entry",
    "is_absolute",
    "is_traversal",
]
