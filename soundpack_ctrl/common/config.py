"""Environment-backed settings for soundpack-ctrl.

Every setting can be overridden through a ``SOUNDPACK_*`` environment
variable; tests pass an explicit mapping instead of mutating ``os.environ``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional

from .constants import DEFAULT_DOWNLOAD_TIMEOUT, DEFAULT_MANIFEST_URL, DEFAULT_SOUNDS_DIR


def env_bool(environ: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class SoundPackSettings:
    """Resolve environment-backed configuration for soundpack-ctrl."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._environ.get(key, default)

    def sounds_dir(self) -> Path:
        raw = self.get("SOUNDPACK_SOUNDS_DIR") or DEFAULT_SOUNDS_DIR
        return Path(raw).expanduser()

    def manifest_url(self) -> str:
        return self.get("SOUNDPACK_MANIFEST_URL") or DEFAULT_MANIFEST_URL

    def registry_urls(self) -> List[str]:
        """Primary manifest URL followed by any extra registries, de-duplicated."""
        urls = [self.manifest_url()]
        for raw in (self.get("SOUNDPACK_REGISTRY_URLS") or "").split(","):
            url = raw.strip()
            if url and url not in urls:
                urls.append(url)
        return urls

    def download_timeout(self) -> int:
        timeout = env_int(self._environ, "SOUNDPACK_DOWNLOAD_TIMEOUT", DEFAULT_DOWNLOAD_TIMEOUT)
        return timeout if timeout > 0 else DEFAULT_DOWNLOAD_TIMEOUT

    def update_cron(self) -> str:
        return (self.get("SOUNDPACK_UPDATE_CRON") or "").strip()

    def auto_activate(self) -> bool:
        return env_bool(self._environ, "SOUNDPACK_AUTO_ACTIVATE", True)
