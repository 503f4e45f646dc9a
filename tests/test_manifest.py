from __future__ import annotations

import io
import json

import pytest

from soundpack_ctrl.common.errors import CorruptedManifestError
from soundpack_ctrl.core import manifest as manifest_module
from soundpack_ctrl.core.database import PackDatabase, PackRecord
from soundpack_ctrl.core.manifest import (
    EMBEDDED_MANIFEST,
    Manifest,
    PackInfo,
    fetch_manifest,
    fetch_merged_manifest,
    find_pack,
    outdated_packs,
    parse_manifest,
    record_for,
)


def _document(*packs):
    return {"version": "1", "packs": list(packs)}


def _serve(monkeypatch, documents):
    def fake_urlopen(url, timeout=None):
        document = documents[url]
        if isinstance(document, Exception):
            raise document
        return io.BytesIO(json.dumps(document).encode("utf-8"))

    monkeypatch.setattr(manifest_module.urllib.request, "urlopen", fake_urlopen)


def test_parse_manifest_skips_bad_entries(caplog):
    data = _document(
        {"id": "good", "name": "Good", "version": "2", "download_url": "https://x.invalid/good.zip", "file_count": 3},
        {"name": "no id"},
        {"id": "Bad Id", "name": "bad"},
        "not an object",
    )

    with caplog.at_level("WARNING"):
        manifest = parse_manifest(data)

    assert [pack.id for pack in manifest.packs] == ["good"]
    assert manifest.packs[0].file_count == 3
    assert "invalid pack id" in caplog.text


@pytest.mark.parametrize("data", [[], {"packs": "nope"}, "text", None])
def test_parse_manifest_rejects_non_manifests(data):
    with pytest.raises(CorruptedManifestError):
        parse_manifest(data)


def test_fetch_manifest_falls_back_to_embedded(monkeypatch):
    _serve(monkeypatch, {"https://r.invalid/a.json": OSError("offline")})

    assert fetch_manifest("https://r.invalid/a.json") is EMBEDDED_MANIFEST


def test_merged_manifest_first_registry_wins(monkeypatch):
    _serve(monkeypatch, {
        "https://r.invalid/a.json": _document({"id": "shared", "name": "From A"}),
        "https://r.invalid/b.json": _document({"id": "shared", "name": "From B"}, {"id": "extra", "name": "Extra"}),
    })

    merged = fetch_merged_manifest(["https://r.invalid/a.json", "https://r.invalid/b.json"])

    assert [(p.id, p.name) for p in merged.packs] == [("shared", "From A"), ("extra", "Extra")]
    assert find_pack(merged, "extra").name == "Extra"
    assert find_pack(merged, "missing") is None


def test_outdated_packs_compare_recorded_versions(tmp_path):
    database = PackDatabase(tmp_path / ".packs.json")
    database.record_install(PackRecord("current", version="1"))
    database.record_install(PackRecord("stale", version="1"))
    database.record_install(PackRecord("local"))
    manifest = Manifest(packs=[
        PackInfo(id="current", name="Current", version="1", download_url="https://x.invalid/c.zip"),
        PackInfo(id="stale", name="Stale", version="2", download_url="https://x.invalid/s.zip"),
        PackInfo(id="local", name="Local", version="5", download_url="https://x.invalid/l.zip"),
    ])

    assert [info.id for info in outdated_packs(database, manifest)] == ["stale"]


def test_record_for_carries_registry_metadata():
    info = PackInfo(id="p", name="P", version="3", download_url="https://x.invalid/p.zip")
    assert record_for(info) == PackRecord("p", name="P", version="3", source="https://x.invalid/p.zip")
