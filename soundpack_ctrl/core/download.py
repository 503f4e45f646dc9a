"""Streaming archive downloads with progress reporting and cancellation."""

from __future__ import annotations

import threading
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Callable, Optional

from soundpack_ctrl.common.constants import DEFAULT_DOWNLOAD_TIMEOUT
from soundpack_ctrl.common.errors import DownloadCancelledError, DownloadError
from soundpack_ctrl.common.logging_config import get_logger

ProgressCallback = Callable[[float], None]

_CHUNK_SIZE = 64 * 1024
_ALLOWED_SCHEMES = ("http", "https")

_log = get_logger(__name__)


def check_url(url: str) -> str:
    """Only plain web URLs may be downloaded (no file:, ftp:, data: ...)."""
    scheme = urllib.parse.urlparse(url).scheme.lower()
    if scheme not in _ALLOWED_SCHEMES:
        raise DownloadError(f"Unsupported download URL scheme {scheme or '(none)'!r}: {url}")
    return url


def _content_length(response) -> Optional[int]:
    raw = response.headers.get("Content-Length") if response.headers else None
    try:
        length = int(raw) if raw is not None else None
    except ValueError:
        return None
    return length if length and length > 0 else None


def download_archive(
    url: str,
    destination: Path,
    progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    timeout: int = DEFAULT_DOWNLOAD_TIMEOUT,
) -> int:
    """Stream ``url`` into ``destination``.

    Progress is reported as a fraction in [0, 1] when the server sends a
    Content-Length. The cancel event is checked between chunks.

    Returns:
        Number of bytes written

    Raises:
        DownloadCancelledError: If ``cancel_event`` was set
        DownloadError: On bad URL, HTTP error, timeout or short transfer
    """
    check_url(url)
    written = 0
    total: Optional[int] = None
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response, destination.open("wb") as out_file:  # noqa: S310
            total = _content_length(response)
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise DownloadCancelledError(f"Download cancelled: {url}")
                chunk = response.read(_CHUNK_SIZE)
                if not chunk:
                    break
                out_file.write(chunk)
                written += len(chunk)
                if progress is not None and total:
                    progress(min(written / total, 1.0))
    except DownloadError:
        raise
    except urllib.error.HTTPError as exc:
        raise DownloadError(f"Download failed with HTTP status {exc.code}: {url}") from exc
    except (urllib.error.URLError, TimeoutError, OSError, ValueError) as exc:
        raise DownloadError(f"Download failed: {exc}") from exc

    if total is not None and written != total:
        raise DownloadError(f"Incomplete download: received {written} of {total} bytes from {url}")
    _log.debug("Downloaded %d bytes from %s", written, url)
    return written


__all__ = ["ProgressCallback", "check_url", "download_archive"]
