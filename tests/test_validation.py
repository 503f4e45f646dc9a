from __future__ import annotations

import pytest

from soundpack_ctrl.common.constants import MAX_FILE_SIZE
from soundpack_ctrl.common.errors import ArchiveUnreadableError, InvalidPackIdError
from soundpack_ctrl.core.structure import ViolationKind
from soundpack_ctrl.core.validation import validate_archive


def test_valid_archive_passes(valid_pack_zip):
    report = validate_archive(valid_pack_zip, "mypack")
    assert report.passed


def test_content_findings_are_reported(make_zip, wav_data):
    data = make_zip({
        "mypack/stop/ok.wav": wav_data,
        "mypack/stop/fake.mp3": b"plain text",
        "mypack/readme.wav": wav_data,
        "mypack/stop/big.wav": b"RIFF\x00\x00\x00\x00WAVE" + b"\x00" * MAX_FILE_SIZE,
    })

    report = validate_archive(data, "mypack")

    assert report.messages() == [
        "UnrecognizedSignature: mypack/stop/fake.mp3",
        "MisplacedFile: mypack/readme.wav",
        "FileTooLarge: mypack/stop/big.wav",
    ]


def test_structural_and_content_phases_both_run(make_zip, wav_data):
    data = make_zip({
        "../escape.wav": wav_data,
        "mypack/bogus/a.wav": wav_data,
        "mypack/stop/fake.ogg": b"text",
    })

    report = validate_archive(data, "mypack")

    assert report.kinds() == [
        ViolationKind.PATH_TRAVERSAL,
        ViolationKind.UNEXPECTED_ROOT,
        ViolationKind.INVALID_EVENT,
        ViolationKind.UNRECOGNIZED_SIGNATURE,
    ]


def test_validation_errors(make_zip, wav_data):
    with pytest.raises(ArchiveUnreadableError):
        validate_archive(b"nope", "mypack")
    with pytest.raises(InvalidPackIdError):
        validate_archive(make_zip({"x/stop/a.wav": wav_data}), "")


def test_failed_validation_logs_nothing_above_debug(make_zip, wav_data, caplog):
    data = make_zip({"mypack/stop/x.exe": b"MZ", "mypack/stop/fake.wav": b"text"})

    with caplog.at_level("INFO"):
        report = validate_archive(data, "mypack")

    assert not report.passed
    assert [record for record in caplog.records if record.name.startswith("soundpack_ctrl")] == []
