from __future__ import annotations

import os

import pytest

from soundpack_ctrl.common.errors import InstallFailedError, InvalidPackIdError
from soundpack_ctrl.core import publish
from soundpack_ctrl.core.publish import publish_pack, retire_pack


def _staged(root, name, content):
    staged = root / f".staging-{name}"
    (staged / "stop").mkdir(parents=True)
    (staged / "stop" / "a.wav").write_text(content)
    return staged


def test_publish_into_empty_root(sounds_dir):
    staged = _staged(sounds_dir, "one", "v1")

    live = publish_pack(staged, sounds_dir, "foo")

    assert live == sounds_dir / "foo"
    assert (live / "stop" / "a.wav").read_text() == "v1"
    assert not staged.exists()


def test_publish_replaces_whole_directory(sounds_dir):
    publish_pack(_staged(sounds_dir, "one", "v1"), sounds_dir, "foo")
    (sounds_dir / "foo" / "stop" / "old-only.wav").write_text("old")

    publish_pack(_staged(sounds_dir, "two", "v2"), sounds_dir, "foo")

    assert sorted(p.name for p in (sounds_dir / "foo" / "stop").iterdir()) == ["a.wav"]
    assert (sounds_dir / "foo" / "stop" / "a.wav").read_text() == "v2"
    assert sorted(p.name for p in sounds_dir.iterdir()) == ["foo"]


def test_failed_publish_leaves_live_directory_untouched(sounds_dir, monkeypatch):
    publish_pack(_staged(sounds_dir, "one", "v1"), sounds_dir, "foo")
    staged = _staged(sounds_dir, "two", "v2")
    real_rename = os.rename

    def failing_rename(src, dst):
        if str(src) == str(staged):
            raise OSError("disk on fire")
        return real_rename(src, dst)

    monkeypatch.setattr(publish.os, "rename", failing_rename)

    with pytest.raises(InstallFailedError):
        publish_pack(staged, sounds_dir, "foo")

    assert (sounds_dir / "foo" / "stop" / "a.wav").read_text() == "v1"
    assert not any(p.name.startswith(".retired-") for p in sounds_dir.iterdir())


def test_publish_rejects_invalid_ids_and_missing_staging(sounds_dir):
    with pytest.raises(InvalidPackIdError):
        publish_pack(_staged(sounds_dir, "one", "v1"), sounds_dir, "../escape")
    with pytest.raises(InstallFailedError):
        publish_pack(sounds_dir / "missing", sounds_dir, "foo")


def test_retire_pack(sounds_dir):
    publish_pack(_staged(sounds_dir, "one", "v1"), sounds_dir, "foo")

    assert retire_pack(sounds_dir, "foo") is True
    assert retire_pack(sounds_dir, "foo") is False
    assert list(sounds_dir.iterdir()) == []
