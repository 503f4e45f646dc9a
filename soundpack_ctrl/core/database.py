"""
Installed pack metadata for soundpack-ctrl.

Handles the installed packs database including:
* Recording name/version/source after an install
* Forgetting packs on uninstall
* Persisting records to a JSON file next to the packs
"""

import json
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

from soundpack_ctrl.common.constants import PACK_DATABASE_FILENAME, validate_pack_id
from soundpack_ctrl.common.errors import CorruptedPackDatabaseError, InvalidPackIdError
from soundpack_ctrl.common.logging_config import get_logger


@dataclass
class PackRecord:
    """Represents an installed pack in the database."""

    pack_id: str
    name: str = ""
    version: str = ""
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PackRecord':
        return cls(
            pack_id=validate_pack_id(str(data['pack_id'])),
            name=str(data.get('name', '')),
            version=str(data.get('version', '')),
            source=str(data.get('source', '')),
        )


class PackDatabase:
    """Manages the installed packs database under the sounds directory."""

    def __init__(self, database_path: Path):
        """
        Initialize the pack database.

        Args:
            database_path: Path to the packs JSON file
        """
        self.database_path = Path(database_path)
        self.packs: List[PackRecord] = []
        self._lock = RLock()
        self._log = get_logger(__name__)
        self._load_database()

    @staticmethod
    def for_sounds_dir(sounds_dir: Path) -> 'PackDatabase':
        """Create a database instance for the given sounds directory."""
        return PackDatabase(Path(sounds_dir) / PACK_DATABASE_FILENAME)

    def _load_database(self) -> None:
        """Load the pack database from the JSON file."""
        try:
            with open(self.database_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            self.packs = []
            return
        except json.JSONDecodeError as e:
            raise CorruptedPackDatabaseError(
                f"{self.database_path.name} is corrupted and cannot be parsed: {e}. "
                "Delete it to rebuild the list of installed packs."
            ) from e
        if not isinstance(data, list):
            raise CorruptedPackDatabaseError(
                f"{self.database_path.name} must contain a JSON array of pack objects."
            )
        packs: List[PackRecord] = []
        for index, pack_data in enumerate(data):
            if not isinstance(pack_data, Mapping):
                raise CorruptedPackDatabaseError(
                    f"{self.database_path.name} entry at index {index} must be a JSON object."
                )
            try:
                packs.append(PackRecord.from_dict(dict(pack_data)))
            except (TypeError, KeyError, ValueError, InvalidPackIdError) as e:
                raise CorruptedPackDatabaseError(
                    f"{self.database_path.name} entry at index {index} is invalid: {e}."
                ) from e
        self.packs = packs
        self._log.debug("Loaded %d pack records", len(self.packs))

    def _write_database(self) -> None:
        """Write the database atomically next to its final location."""
        data = [pack.to_dict() for pack in self.packs]
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".packs-", suffix=".tmp", dir=self.database_path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.database_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._log.debug("Persisted %d pack records", len(self.packs))

    def record_install(self, record: PackRecord) -> None:
        """Insert or replace the record for ``record.pack_id``."""
        with self._lock:
            self.packs = [p for p in self.packs if p.pack_id != record.pack_id]
            self.packs.append(record)
            self.packs.sort(key=lambda p: p.pack_id)
            self._write_database()
            self._log.info("Recorded pack %s version %s", record.pack_id, record.version or "-")

    def remove_pack(self, pack_id: str) -> bool:
        with self._lock:
            before = len(self.packs)
            self.packs = [p for p in self.packs if p.pack_id != pack_id]
            if len(self.packs) != before:
                self._write_database()
                self._log.info("Forgot pack %s", pack_id)
                return True
            return False

    def get_pack(self, pack_id: str) -> Optional[PackRecord]:
        for pack in self.packs:
            if pack.pack_id == pack_id:
                return pack
        return None

    def get_all_packs(self) -> List[PackRecord]:
        """Get a list of all recorded packs."""
        return list(self.packs)


__all__ = ["PackDatabase", "PackRecord"]
