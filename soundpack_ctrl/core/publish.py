"""Atomic publication of sanitized packs into the live sounds directory.

The live directory for a pack is only ever changed by ``os.rename``. A
previous version is renamed aside first and removed after the new one is in
place, so readers see the old directory, no directory, or the new directory,
never a mixture of both.
"""

from __future__ import annotations

import os
import shutil
import threading
import uuid
from collections import defaultdict
from pathlib import Path
from typing import DefaultDict

from soundpack_ctrl.common.constants import RETIRED_PREFIX, validate_pack_id
from soundpack_ctrl.common.errors import InstallFailedError
from soundpack_ctrl.common.logging_config import get_logger

_log = get_logger(__name__)

_locks_guard = threading.Lock()
_pack_locks: DefaultDict[str, threading.Lock] = defaultdict(threading.Lock)


def pack_lock(live_root: Path, pack_id: str) -> threading.Lock:
    """Process-wide lock serializing renames of one pack id under one root."""
    key = os.path.join(os.path.abspath(live_root), pack_id)
    with _locks_guard:
        return _pack_locks[key]


def retired_path(live_root: Path, pack_id: str) -> Path:
    return live_root / f"{RETIRED_PREFIX}{pack_id}-{uuid.uuid4().hex}"


def discard_retired(path: Path) -> None:
    try:
        if path.is_symlink():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as exc:
        _log.warning("Could not remove retired pack directory %s: %s", path, exc)


def publish_pack(staged_dir: Path, live_root: Path, pack_id: str) -> Path:
    """Move ``staged_dir`` into place as ``live_root/pack_id``.

    Args:
        staged_dir: Sanitized pack directory on the same volume as ``live_root``
        live_root: Sounds directory holding installed packs
        pack_id: Validated pack id

    Returns:
        Path of the live pack directory

    Raises:
        InstallFailedError: If the rename fails; the previous live directory
            (if any) is left in place
    """
    validate_pack_id(pack_id)
    live_dir = live_root / pack_id
    if not staged_dir.is_dir() or staged_dir.is_symlink():
        raise InstallFailedError(f"Staged pack {staged_dir} is not a directory")

    with pack_lock(live_root, pack_id):
        aside = None
        if os.path.lexists(live_dir):
            aside = retired_path(live_root, pack_id)
            try:
                os.rename(live_dir, aside)
            except OSError as exc:
                raise InstallFailedError(f"Could not retire current version of {pack_id}: {exc}") from exc

        try:
            os.rename(staged_dir, live_dir)
        except OSError as exc:
            if aside is not None:
                try:
                    os.rename(aside, live_dir)
                except OSError as restore_exc:  # pragma: no cover
                    _log.error("Failed to restore %s from %s: %s", pack_id, aside, restore_exc)
            raise InstallFailedError(f"Could not publish pack {pack_id}: {exc}") from exc

    if aside is not None:
        discard_retired(aside)
    _log.info("Published pack %s to %s", pack_id, live_dir)
    return live_dir


def retire_pack(live_root: Path, pack_id: str) -> bool:
    """Atomically remove ``live_root/pack_id`` from view and delete it.

    Returns:
        True if a pack directory was removed, False if none existed
    """
    validate_pack_id(pack_id)
    live_dir = live_root / pack_id
    with pack_lock(live_root, pack_id):
        if not os.path.lexists(live_dir):
            return False
        aside = retired_path(live_root, pack_id)
        try:
            os.rename(live_dir, aside)
        except OSError as exc:
            raise InstallFailedError(f"Could not remove pack {pack_id}: {exc}") from exc
    discard_retired(aside)
    return True


__all__ = ["discard_retired", "pack_lock", "publish_pack", "retire_pack"]
