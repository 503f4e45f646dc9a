"""
Constants and exit codes for soundpack-ctrl.

The event names, extension allow-list and size limits are part of the pack
security contract and are intentionally not configurable.
"""

import os
import re

from .errors import InvalidPackIdError

EVENT_NAMES = (
    "session-start",
    "prompt-submit",
    "notification",
    "stop",
    "session-end",
    "subagent-stop",
    "tool-failure",
)
EVENT_NAME_SET = frozenset(EVENT_NAMES)

ALLOWED_EXTENSIONS = frozenset({"wav", "mp3", "aiff", "m4a", "ogg", "aac"})

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_ENTRY_DEPTH = 3
HEADER_LENGTH = 12
COPY_CHUNK_SIZE = 1024 * 1024

PACK_ID_PATTERN = re.compile(r"[a-z0-9-]+")

ACTIVE_PACK_FILENAME = ".active-pack"
PACK_DATABASE_FILENAME = ".packs.json"
STAGING_PREFIX = ".staging-"
RETIRED_PREFIX = ".retired-"
DEFAULT_PACK_ID = "protoss"

DEFAULT_SOUNDS_DIR = os.path.join("~", ".claude", "sounds")
DEFAULT_MANIFEST_URL = "https://raw.githubusercontent.com/michalarent/claude-sounds/main/sound-packs.json"
DEFAULT_DOWNLOAD_TIMEOUT = 30


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    VALIDATION_FAILED = 1
    ARCHIVE_UNREADABLE = 2
    EXTRACTION_FAILED = 3
    INSTALL_FAILED = 4
    INVALID_PACK_ID = 5
    DOWNLOAD_FAILED = 6
    FILE_REJECTED = 7
    PACK_NOT_FOUND = 8
    CORRUPTED_PACK_DATABASE = 9
    CORRUPTED_MANIFEST = 10
    PACK_ALREADY_EXISTS = 11


def validate_pack_id(pack_id: str) -> str:
    """Return ``pack_id`` unchanged if it is safe to use as a path component."""
    if not isinstance(pack_id, str) or not PACK_ID_PATTERN.fullmatch(pack_id):
        raise InvalidPackIdError(f"Invalid pack id {pack_id!r}; expected lowercase letters, digits and '-'")
    return pack_id


def file_extension(name: str) -> str:
    """Lower-cased extension of a file name, or '' when there is none."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()
