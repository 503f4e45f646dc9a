"""Post-extraction content audit.

The sanitizer never trusts names: it removes symlinks by attribute before
reading anything, keeps only ``<event>/<file>`` audio files whose size and
leading bytes check out, and then prunes directories left empty.
"""

from __future__ import annotations

import os
import shutil
import stat
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from soundpack_ctrl.common.constants import (
    ALLOWED_EXTENSIONS,
    EVENT_NAME_SET,
    MAX_FILE_SIZE,
    file_extension,
)
from soundpack_ctrl.common.logging_config import get_logger

from .signatures import has_audio_signature

_log = get_logger(__name__)


class RejectionReason(Enum):
    SYMLINK = "symlink"
    UNKNOWN_EVENT_DIRECTORY = "directory is not an event name"
    SPECIAL_FILE = "not a regular file or directory"
    MISPLACED_FILE = "file is not directly inside an event directory"
    UNKNOWN_EVENT = "parent directory is not an event name"
    DISALLOWED_EXTENSION = "extension not allowed"
    TOO_LARGE = "file exceeds size limit"
    UNRECOGNIZED_SIGNATURE = "leading bytes match no audio format"


def check_regular_file(path: Path, st: os.stat_result, relative: Tuple[str, ...]) -> Optional[RejectionReason]:
    """Leaf and placement checks for a regular file found during the walk."""
    if len(relative) != 2:
        return RejectionReason.MISPLACED_FILE
    if relative[0] not in EVENT_NAME_SET:
        return RejectionReason.UNKNOWN_EVENT
    return check_audio_leaf(path, st)


def check_audio_leaf(path: Path, st: os.stat_result) -> Optional[RejectionReason]:
    """Checks shared with single-file admission: extension, size, magic bytes."""
    if file_extension(path.name) not in ALLOWED_EXTENSIONS:
        return RejectionReason.DISALLOWED_EXTENSION
    if st.st_size > MAX_FILE_SIZE:
        return RejectionReason.TOO_LARGE
    if not has_audio_signature(path):
        return RejectionReason.UNRECOGNIZED_SIGNATURE
    return None


def classify(path: Path, relative: Tuple[str, ...]) -> Tuple[Optional[RejectionReason], bool]:
    """Return (rejection reason, descend) for one walked entry."""
    st = os.lstat(path)
    mode = st.st_mode
    if stat.S_ISLNK(mode):
        return RejectionReason.SYMLINK, False
    if stat.S_ISDIR(mode):
        if len(relative) == 1 and relative[0] not in EVENT_NAME_SET:
            return RejectionReason.UNKNOWN_EVENT_DIRECTORY, False
        return None, True
    if stat.S_ISREG(mode):
        return check_regular_file(path, st, relative), False
    return RejectionReason.SPECIAL_FILE, False


def _walk(root: Path, marked: List[Tuple[Path, RejectionReason]]) -> None:
    stack: List[Tuple[Path, Tuple[str, ...]]] = [(root, ())]
    while stack:
        directory, prefix = stack.pop()
        with os.scandir(directory) as iterator:
            names = sorted(entry.name for entry in iterator)
        children = []
        for name in names:
            path = directory / name
            relative = prefix + (name,)
            reason, descend = classify(path, relative)
            if reason is not None:
                marked.append((path, reason))
            elif descend:
                children.append((path, relative))
        # Reversed so the stack yields children in name order (pre-order walk).
        stack.extend(reversed(children))


def _remove(path: Path) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


def prune_empty_directories(root: Path) -> int:
    """Remove directories under ``root`` that hold no entries, deepest first."""
    removed = 0
    for current, _dirs, _files in os.walk(root, topdown=False):
        if Path(current) == root:
            continue
        if not os.listdir(current):
            os.rmdir(current)
            removed += 1
    return removed


def sanitize_pack_directory(pack_dir: Path) -> int:
    """Remove every entry of an extracted pack that fails the content rules.

    Args:
        pack_dir: Root of the extracted pack (the directory named after the pack id)

    Returns:
        Number of marked entries removed (empty-directory pruning not counted)

    Raises:
        OSError: If a rejected entry cannot be removed
    """
    marked: List[Tuple[Path, RejectionReason]] = []
    _walk(pack_dir, marked)

    for path, reason in reversed(marked):
        _log.info("Removing %s: %s", path.relative_to(pack_dir), reason.value)
        _remove(path)

    pruned = prune_empty_directories(pack_dir)
    if marked or pruned:
        _log.info(
            "Sanitized %s: removed %d entries, pruned %d empty directories",
            pack_dir.name,
            len(marked),
            pruned,
        )
    return len(marked)


def admit_file(path: Path) -> bool:
    """Single-file admission: allow-listed extension, regular file, size and signature."""
    try:
        st = os.lstat(path)
    except OSError as exc:
        _log.info("Rejecting %s: %s", path, exc)
        return False
    if stat.S_ISLNK(st.st_mode):
        reason: Optional[RejectionReason] = RejectionReason.SYMLINK
    elif not stat.S_ISREG(st.st_mode):
        reason = RejectionReason.SPECIAL_FILE
    else:
        reason = check_audio_leaf(path, st)
    if reason is not None:
        _log.info("Rejecting %s: %s", path.name, reason.value)
        return False
    return True


__all__ = [
    "RejectionReason",
    "admit_file",
    "check_audio_leaf",
    "prune_empty_directories",
    "sanitize_pack_directory",
]
