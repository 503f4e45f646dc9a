"""Magic-byte signatures for the audio formats a pack may contain.

Every :class:`AudioFormat` has exactly one rule in ``_RULES``; detection walks
the enum, so a format without a rule fails loudly instead of being accepted.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Callable, Dict, Optional, Union

from soundpack_ctrl.common.constants import HEADER_LENGTH


class AudioFormat(Enum):
    WAV = "wav"
    AIFF = "aiff"
    OGG = "ogg"
    MP3_ID3 = "mp3-id3"
    MP3_FRAME = "mp3-frame"
    AAC_ADTS = "aac-adts"
    MP4 = "mp4"


def _is_wav(header: bytes) -> bool:
    return len(header) >= 12 and header[0:4] == b"RIFF" and header[8:12] == b"WAVE"


def _is_aiff(header: bytes) -> bool:
    return len(header) >= 12 and header[0:4] == b"FORM" and header[8:12] == b"AIFF"


def _is_ogg(header: bytes) -> bool:
    return header[0:4] == b"OggS"


def _is_mp3_id3(header: bytes) -> bool:
    return header[0:3] == b"ID3"


def _is_mp3_frame(header: bytes) -> bool:
    return len(header) >= 2 and header[0] == 0xFF and header[1] in (0xFB, 0xF3, 0xF2)


def _is_aac_adts(header: bytes) -> bool:
    return len(header) >= 2 and header[0] == 0xFF and header[1] in (0xF1, 0xF9)


def _is_mp4(header: bytes) -> bool:
    return len(header) >= 8 and header[4:8] == b"ftyp"


_RULES: Dict[AudioFormat, Callable[[bytes], bool]] = {
    AudioFormat.WAV: _is_wav,
    AudioFormat.AIFF: _is_aiff,
    AudioFormat.OGG: _is_ogg,
    AudioFormat.MP3_ID3: _is_mp3_id3,
    AudioFormat.MP3_FRAME: _is_mp3_frame,
    AudioFormat.AAC_ADTS: _is_aac_adts,
    AudioFormat.MP4: _is_mp4,
}


def detect_format(header: bytes) -> Optional[AudioFormat]:
    """Return the first format whose signature matches ``header``, else None."""
    if len(header) < 4:
        return None
    for audio_format in AudioFormat:
        if _RULES[audio_format](header):
            return audio_format
    return None


def read_header(path: Union[str, "os.PathLike[str]"]) -> bytes:
    """Read the leading bytes of a regular file without following symlinks.

    Raises OSError when ``path`` is a symlink (ELOOP) or cannot be opened.
    """
    flags = os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0) | getattr(os, "O_NONBLOCK", 0)
    fd = os.open(path, flags)
    with os.fdopen(fd, "rb") as handle:
        return handle.read(HEADER_LENGTH)


def has_audio_signature(path: Union[str, "os.PathLike[str]"]) -> bool:
    """True when the file at ``path`` starts with a recognized audio signature."""
    try:
        header = read_header(path)
    except OSError:
        return False
    return detect_format(header) is not None


__all__ = ["AudioFormat", "detect_format", "read_header", "has_audio_signature"]
