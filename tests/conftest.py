"""Shared fixtures: stable temp directory on WSL and in-memory pack archives."""

from __future__ import annotations

import io
import os
import platform
import stat
import sys
import tempfile
import zipfile
from typing import Dict, Iterable, Mapping, Optional

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from soundpack_ctrl.common.config import SoundPackSettings  # noqa: E402


def _is_wsl() -> bool:
    release = platform.release().lower()
    version = platform.version().lower()
    return "microsoft" in release or "microsoft" in version


if _is_wsl() and os.path.isdir("/tmp"):
    os.environ["TMPDIR"] = "/tmp"
    os.environ["TEMP"] = "/tmp"
    os.environ["TMP"] = "/tmp"
    tempfile.tempdir = "/tmp"


WAV_DATA = b"RIFF\x24\x04\x00\x00WAVEfmt " + b"\x00" * 1012
MP3_DATA = b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\x00" * 502
OGG_DATA = b"OggS\x00\x02" + b"\x00" * 250


def build_zip(
    files: Mapping[str, bytes],
    directories: Iterable[str] = (),
    symlinks: Optional[Dict[str, str]] = None,
) -> bytes:
    """Build a ZIP in memory; symlink members carry S_IFLNK in their Unix mode."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in directories:
            zf.writestr(name if name.endswith("/") else name + "/", b"")
        for name, data in files.items():
            zf.writestr(name, data)
        for name, target in (symlinks or {}).items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (stat.S_IFLNK | 0o777) << 16
            zf.writestr(info, target)
    return buffer.getvalue()


def patch_central_directory(data: bytes, offset: int, value: int) -> bytes:
    """Overwrite a 2-byte field of the first central directory header."""
    start = data.index(b"PK\x01\x02")
    patched = bytearray(data)
    patched[start + offset:start + offset + 2] = value.to_bytes(2, "little")
    return bytes(patched)


@pytest.fixture
def make_zip():
    return build_zip


@pytest.fixture
def wav_data() -> bytes:
    return WAV_DATA


@pytest.fixture
def mp3_data() -> bytes:
    return MP3_DATA


@pytest.fixture
def sounds_dir(tmp_path):
    path = tmp_path / "sounds"
    path.mkdir()
    return path


@pytest.fixture
def settings(sounds_dir) -> SoundPackSettings:
    return SoundPackSettings({
        "SOUNDPACK_SOUNDS_DIR": str(sounds_dir),
        "SOUNDPACK_MANIFEST_URL": "https://registry.example.invalid/sound-packs.json",
    })


@pytest.fixture
def valid_pack_zip(make_zip, wav_data, mp3_data) -> bytes:
    return make_zip(
        {
            "mypack/session-start/hello.wav": wav_data,
            "mypack/stop/done.mp3": mp3_data,
            "mypack/notification/ping.ogg": OGG_DATA,
        },
        directories=["mypack/", "mypack/session-start/", "mypack/stop/", "mypack/notification/"],
    )


@pytest.fixture
def patch_zip():
    return patch_central_directory
