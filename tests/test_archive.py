from __future__ import annotations

import io

import pytest

from soundpack_ctrl.common.errors import ArchiveUnreadableError
from soundpack_ctrl.core.archive import ArchiveEntry, EntryKind, list_entries


def test_list_entries_preserves_order_and_kinds(make_zip, wav_data):
    data = make_zip(
        {"pack/stop/a.wav": wav_data},
        directories=["pack/"],
        symlinks={"pack/stop/evil.wav": "/etc/passwd"},
    )

    entries = list_entries(data)

    assert entries == [
        ArchiveEntry("pack/", EntryKind.DIRECTORY),
        ArchiveEntry("pack/stop/a.wav", EntryKind.FILE, len(wav_data)),
        ArchiveEntry("pack/stop/evil.wav", EntryKind.SYMLINK),
    ]


def test_list_entries_accepts_paths_and_file_objects(tmp_path, valid_pack_zip):
    archive = tmp_path / "pack.zip"
    archive.write_bytes(valid_pack_zip)

    from_path = list_entries(archive)
    from_str = list_entries(str(archive))
    from_stream = list_entries(io.BytesIO(valid_pack_zip))

    assert from_path == from_str == from_stream
    assert len(from_path) == 7


def test_list_entries_has_no_side_effects(tmp_path, valid_pack_zip):
    archive = tmp_path / "pack.zip"
    archive.write_bytes(valid_pack_zip)

    list_entries(archive)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["pack.zip"]


@pytest.mark.parametrize("data", [b"", b"not a zip archive", b"PK\x03\x04garbage"])
def test_corrupt_archives_are_unreadable(data):
    with pytest.raises(ArchiveUnreadableError):
        list_entries(data)


def test_missing_archive_is_unreadable(tmp_path):
    with pytest.raises(ArchiveUnreadableError):
        list_entries(tmp_path / "missing.zip")


def test_encrypted_entries_are_unreadable(make_zip, patch_zip, wav_data):
    data = patch_zip(make_zip({"pack/stop/a.wav": wav_data}), 8, 0x1)

    with pytest.raises(ArchiveUnreadableError, match="encrypted"):
        list_entries(data)


def test_unsupported_compression_is_unreadable(make_zip, patch_zip, wav_data):
    data = patch_zip(make_zip({"pack/stop/a.wav": wav_data}), 10, 99)

    with pytest.raises(ArchiveUnreadableError, match="compression"):
        list_entries(data)
