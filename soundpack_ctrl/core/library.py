"""Access to installed packs in the live sounds directory.

Readers never lock. A snapshot pins the pack directory through a directory
file descriptor and checks at the end that the pinned directory is still the
live one; if an install replaced it meanwhile the snapshot is retaken.
"""

from __future__ import annotations

import os
import random
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from soundpack_ctrl.common.config import SoundPackSettings
from soundpack_ctrl.common.constants import (
    ACTIVE_PACK_FILENAME,
    ALLOWED_EXTENSIONS,
    COPY_CHUNK_SIZE,
    DEFAULT_PACK_ID,
    EVENT_NAME_SET,
    EVENT_NAMES,
    MAX_FILE_SIZE,
    PACK_ID_PATTERN,
    file_extension,
    validate_pack_id,
)
from soundpack_ctrl.common.errors import (
    ContentRejectedError,
    PackAlreadyExistsError,
    PackNotFoundError,
)
from soundpack_ctrl.common.logging_config import get_logger

from .database import PackDatabase
from .extract import scratch_directory
from .publish import publish_pack, retire_pack
from .sanitize import admit_file

_O_DIRECTORY = getattr(os, "O_DIRECTORY", 0)
_O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)
_DIR_FLAGS = os.O_RDONLY | _O_DIRECTORY | _O_NOFOLLOW
_FILE_FLAGS = os.O_RDONLY | _O_NOFOLLOW
SNAPSHOT_ATTEMPTS = 5
SNAPSHOT_RETRY_DELAY = 0.01

T = TypeVar("T")

_log = get_logger(__name__)


@dataclass
class PackSnapshot:
    """All sound files of one pack version, keyed by event then file name."""

    pack_id: str
    files: Dict[str, Dict[str, bytes]] = field(default_factory=dict)

    def paths(self) -> List[str]:
        return [f"{event}/{name}" for event in sorted(self.files) for name in sorted(self.files[event])]


def _check_event(event: str) -> str:
    if event not in EVENT_NAME_SET:
        raise ValueError(f"Unknown event {event!r}; expected one of: {', '.join(EVENT_NAMES)}")
    return event


def _check_file_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name or name.startswith("."):
        raise ContentRejectedError(f"Invalid sound file name {name!r}")
    return name


def _is_sound_name(name: str) -> bool:
    return not name.startswith(".") and file_extension(name) in ALLOWED_EXTENSIONS


def _list_pinned(pack_fd: int) -> List[Tuple[str, str]]:
    found: List[Tuple[str, str]] = []
    for event in EVENT_NAMES:
        try:
            event_fd = os.open(event, _DIR_FLAGS, dir_fd=pack_fd)
        except FileNotFoundError:
            continue
        try:
            with os.scandir(event_fd) as iterator:
                names = sorted(entry.name for entry in iterator if _is_sound_name(entry.name))
        finally:
            os.close(event_fd)
        found.extend((event, name) for name in names)
    return found


def _read_pinned(pack_fd: int, event: str, name: str) -> bytes:
    event_fd = os.open(event, _DIR_FLAGS, dir_fd=pack_fd)
    try:
        fd = os.open(name, _FILE_FLAGS, dir_fd=event_fd)
    finally:
        os.close(event_fd)
    with os.fdopen(fd, "rb") as handle:
        return handle.read(MAX_FILE_SIZE + 1)


class PackLibrary:
    """Installed packs under a sounds directory."""

    def __init__(self, sounds_dir: Path, database: Optional[PackDatabase] = None) -> None:
        self.sounds_dir = Path(sounds_dir)
        self._database = database

    @staticmethod
    def from_settings(settings: Optional[SoundPackSettings] = None) -> "PackLibrary":
        settings = settings or SoundPackSettings()
        return PackLibrary(settings.sounds_dir())

    @property
    def database(self) -> PackDatabase:
        if self._database is None:
            self._database = PackDatabase.for_sounds_dir(self.sounds_dir)
        return self._database

    @property
    def active_pack_file(self) -> Path:
        return self.sounds_dir / ACTIVE_PACK_FILENAME

    def pack_path(self, pack_id: str) -> Path:
        return self.sounds_dir / validate_pack_id(pack_id)

    def is_installed(self, pack_id: str) -> bool:
        path = self.pack_path(pack_id)
        return path.is_dir() and not path.is_symlink()

    def _require_installed(self, pack_id: str) -> Path:
        if not self.is_installed(pack_id):
            raise PackNotFoundError(f"Pack '{pack_id}' is not installed")
        return self.pack_path(pack_id)

    def installed_pack_ids(self) -> List[str]:
        """Sorted ids of installed packs; hidden staging entries are ignored."""
        try:
            entries = list(os.scandir(self.sounds_dir))
        except FileNotFoundError:
            return []
        return sorted(
            entry.name
            for entry in entries
            if PACK_ID_PATTERN.fullmatch(entry.name) and entry.is_dir(follow_symlinks=False)
        )

    # Active pack

    def active_pack_id(self) -> Optional[str]:
        try:
            value = self.active_pack_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        if not value or not PACK_ID_PATTERN.fullmatch(value):
            return None
        return value

    def set_active_pack(self, pack_id: str) -> None:
        self._require_installed(pack_id)
        self.sounds_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".active-", dir=self.sounds_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(pack_id)
            os.replace(tmp_name, self.active_pack_file)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        _log.info("Active pack set to %s", pack_id)

    def clear_active_pack(self) -> None:
        self.active_pack_file.unlink(missing_ok=True)

    def ensure_active_pack(self) -> Optional[str]:
        """Keep the active pack valid, preferring the default pack when picking one."""
        active = self.active_pack_id()
        if active is not None and self.is_installed(active):
            return active
        installed = self.installed_pack_ids()
        if not installed:
            return None
        chosen = DEFAULT_PACK_ID if DEFAULT_PACK_ID in installed else installed[0]
        self.set_active_pack(chosen)
        return chosen

    # Pack lifecycle

    def create_pack(self, pack_id: str) -> Path:
        """Create an empty pack holding one directory per event."""
        validate_pack_id(pack_id)
        if os.path.lexists(self.pack_path(pack_id)):
            raise PackAlreadyExistsError(f"A pack with id '{pack_id}' already exists")
        with scratch_directory(self.sounds_dir, pack_id) as scratch:
            staged = scratch / pack_id
            for event in EVENT_NAMES:
                (staged / event).mkdir(parents=True)
            live_dir = publish_pack(staged, self.sounds_dir, pack_id)
        _log.info("Created empty pack %s", pack_id)
        return live_dir

    def uninstall_pack(self, pack_id: str) -> None:
        validate_pack_id(pack_id)
        if not retire_pack(self.sounds_dir, pack_id):
            raise PackNotFoundError(f"Pack '{pack_id}' is not installed")
        self.database.remove_pack(pack_id)
        if self.active_pack_id() == pack_id:
            self.clear_active_pack()
        _log.info("Uninstalled pack %s", pack_id)

    # Sound files

    def sound_files(self, pack_id: str, event: str) -> List[Path]:
        directory = self._require_installed(pack_id) / _check_event(event)
        try:
            entries = list(os.scandir(directory))
        except FileNotFoundError:
            return []
        return sorted(
            directory / entry.name
            for entry in entries
            if _is_sound_name(entry.name) and entry.is_file(follow_symlinks=False)
        )

    def add_sound(self, pack_id: str, event: str, source: Path) -> Path:
        """Admit one audio file into an installed pack.

        The file is copied next to the pack, validated as a copy, and linked
        into the event directory, so a rejected or half-copied file is never
        visible.

        Raises:
            ContentRejectedError: If the file fails the audio checks or the
                name is already taken
        """
        pack_dir = self._require_installed(pack_id)
        _check_event(event)
        source = Path(source)
        name = _check_file_name(source.name)
        extension = file_extension(name)
        if extension not in ALLOWED_EXTENSIONS:
            raise ContentRejectedError(f"{name}: extension not allowed")
        if not admit_file(source):
            raise ContentRejectedError(f"{name}: not an accepted audio file")

        event_dir = pack_dir / event
        event_dir.mkdir(exist_ok=True)
        destination = event_dir / name
        fd, tmp_name = tempfile.mkstemp(prefix=".incoming-", suffix=f".{extension}", dir=self.sounds_dir)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out_file:
                self._copy_source(source, out_file)
            if not admit_file(tmp_path):
                raise ContentRejectedError(f"{name}: not an accepted audio file")
            try:
                os.link(tmp_path, destination)
            except FileExistsError as exc:
                raise ContentRejectedError(f"{name} already exists in {pack_id}/{event}") from exc
        finally:
            tmp_path.unlink(missing_ok=True)
        _log.info("Added %s to %s/%s", name, pack_id, event)
        return destination

    @staticmethod
    def _copy_source(source: Path, out_file) -> None:
        limit = MAX_FILE_SIZE + 1
        written = 0
        fd = os.open(source, _FILE_FLAGS)
        with os.fdopen(fd, "rb") as handle:
            while written < limit:
                chunk = handle.read(min(COPY_CHUNK_SIZE, limit - written))
                if not chunk:
                    break
                out_file.write(chunk)
                written += len(chunk)

    def remove_sound(self, pack_id: str, event: str, name: str) -> bool:
        pack_dir = self._require_installed(pack_id)
        path = pack_dir / _check_event(event) / _check_file_name(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        _log.info("Removed %s from %s/%s", name, pack_id, event)
        return True

    # Consistent reads

    def _pinned(self, pack_id: str, reader: Callable[[int], T]) -> T:
        path = self.pack_path(pack_id)
        for attempt in range(SNAPSHOT_ATTEMPTS):
            if attempt:
                time.sleep(SNAPSHOT_RETRY_DELAY * attempt)
            try:
                pack_fd = os.open(path, _DIR_FLAGS)
            except (FileNotFoundError, NotADirectoryError):
                # Between the two renames of a publish the pack is briefly absent.
                continue
            except OSError as exc:
                raise PackNotFoundError(f"Pack '{pack_id}' cannot be opened: {exc}") from exc
            try:
                result = reader(pack_fd)
                pinned = os.fstat(pack_fd)
                # Compared while the pinned directory is still open so its inode cannot be reused.
                live = os.stat(path, follow_symlinks=False)
            except FileNotFoundError:
                continue
            finally:
                os.close(pack_fd)
            if (live.st_dev, live.st_ino) == (pinned.st_dev, pinned.st_ino):
                return result
            _log.debug("Pack %s changed during read; retrying", pack_id)
        if not os.path.lexists(path):
            raise PackNotFoundError(f"Pack '{pack_id}' is not installed")
        raise PackNotFoundError(f"Pack '{pack_id}' kept changing while being read")

    def snapshot(self, pack_id: str) -> PackSnapshot:
        """Read every sound file of one pack version."""
        validate_pack_id(pack_id)

        def read_all(pack_fd: int) -> PackSnapshot:
            snapshot = PackSnapshot(pack_id=pack_id)
            for event, name in _list_pinned(pack_fd):
                snapshot.files.setdefault(event, {})[name] = _read_pinned(pack_fd, event, name)
            return snapshot

        return self._pinned(pack_id, read_all)

    def pick_random_sound(self, pack_id: str, rng: Optional[random.Random] = None) -> Optional[Tuple[str, bytes]]:
        """Pick one sound of a pack for preview as (``event/name``, bytes)."""
        validate_pack_id(pack_id)
        chooser = rng or random

        def read_one(pack_fd: int) -> Optional[Tuple[str, bytes]]:
            candidates = _list_pinned(pack_fd)
            if not candidates:
                return None
            event, name = chooser.choice(candidates)
            return f"{event}/{name}", _read_pinned(pack_fd, event, name)

        return self._pinned(pack_id, read_one)


__all__ = ["PackLibrary", "PackSnapshot", "SNAPSHOT_ATTEMPTS"]
