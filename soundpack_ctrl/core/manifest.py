"""Sound pack registry manifests.

A registry is a JSON document listing downloadable packs. Network and decode
failures fall back to the embedded manifest so the catalogue is never empty.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from soundpack_ctrl.common.constants import DEFAULT_DOWNLOAD_TIMEOUT, PACK_ID_PATTERN
from soundpack_ctrl.common.errors import CorruptedManifestError
from soundpack_ctrl.common.logging_config import get_logger

from .database import PackDatabase, PackRecord

_log = get_logger(__name__)


@dataclass(frozen=True)
class PackInfo:
    """One downloadable pack as described by a registry."""

    id: str
    name: str
    description: str = ""
    version: str = ""
    author: str = ""
    download_url: Optional[str] = None
    size: str = ""
    file_count: int = 0
    preview_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PackInfo":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            description=str(data.get("description", "")),
            version=str(data.get("version", "")),
            author=str(data.get("author", "")),
            download_url=data.get("download_url") or None,
            size=str(data.get("size", "")),
            file_count=int(data.get("file_count") or 0),
            preview_url=data.get("preview_url") or None,
        )


@dataclass
class Manifest:
    version: str = "1"
    packs: List[PackInfo] = field(default_factory=list)


EMBEDDED_MANIFEST = Manifest(
    version="1",
    packs=[
        PackInfo(
            id="protoss",
            name="StarCraft Protoss",
            description="Protoss voice lines from StarCraft",
            version="1.0",
            author="Blizzard Entertainment",
            download_url="https://github.com/michalarent/claude-sounds/releases/download/v2.0/protoss.zip",
            size="2.1 MB",
            file_count=42,
        )
    ],
)


def parse_manifest(data: Any) -> Manifest:
    """Build a Manifest from decoded JSON, skipping malformed pack entries.

    Raises:
        CorruptedManifestError: If the document is not a manifest object
    """
    if not isinstance(data, dict) or not isinstance(data.get("packs"), list):
        raise CorruptedManifestError("Manifest must be an object with a 'packs' array")
    packs: List[PackInfo] = []
    for index, item in enumerate(data["packs"]):
        if not isinstance(item, dict):
            _log.warning("Skipping manifest entry %d: not an object", index)
            continue
        try:
            info = PackInfo.from_dict(item)
        except (KeyError, TypeError, ValueError) as exc:
            _log.warning("Skipping manifest entry %d: %s", index, exc)
            continue
        if not PACK_ID_PATTERN.fullmatch(info.id):
            _log.warning("Skipping manifest entry %d: invalid pack id %r", index, info.id)
            continue
        packs.append(info)
    return Manifest(version=str(data.get("version", "1")), packs=packs)


def fetch_manifest(url: str, timeout: int = DEFAULT_DOWNLOAD_TIMEOUT) -> Manifest:
    """Fetch and parse a registry manifest, falling back to the embedded one."""
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:  # noqa: S310
            return parse_manifest(json.loads(response.read().decode("utf-8")))
    except (urllib.error.URLError, TimeoutError, OSError, ValueError, CorruptedManifestError) as exc:
        _log.warning("Could not load manifest %s (%s); using embedded manifest", url, exc)
        return EMBEDDED_MANIFEST


def fetch_merged_manifest(urls: Iterable[str], timeout: int = DEFAULT_DOWNLOAD_TIMEOUT) -> Manifest:
    """Merge several registries; the first registry listing an id wins."""
    merged = Manifest()
    seen = set()
    for url in urls:
        for pack in fetch_manifest(url, timeout=timeout).packs:
            if pack.id in seen:
                continue
            seen.add(pack.id)
            merged.packs.append(pack)
    return merged


def find_pack(manifest: Manifest, pack_id: str) -> Optional[PackInfo]:
    for pack in manifest.packs:
        if pack.id == pack_id:
            return pack
    return None


def outdated_packs(database: PackDatabase, manifest: Manifest) -> List[PackInfo]:
    """Registry entries whose version differs from the installed record."""
    result: List[PackInfo] = []
    for record in database.get_all_packs():
        info = find_pack(manifest, record.pack_id)
        if info is None or not info.version or not info.download_url:
            continue
        if record.version and record.version != info.version:
            result.append(info)
    return result


def record_for(info: PackInfo) -> PackRecord:
    return PackRecord(pack_id=info.id, name=info.name, version=info.version, source=info.download_url or "")


__all__ = [
    "EMBEDDED_MANIFEST",
    "Manifest",
    "PackInfo",
    "fetch_manifest",
    "fetch_merged_manifest",
    "find_pack",
    "outdated_packs",
    "parse_manifest",
    "record_for",
]
