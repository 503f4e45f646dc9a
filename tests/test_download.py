from __future__ import annotations

import io
import threading
import urllib.error

import pytest

from soundpack_ctrl.common.errors import DownloadCancelledError, DownloadError
from soundpack_ctrl.core import download
from soundpack_ctrl.core.download import check_url, download_archive


class FakeResponse(io.BytesIO):
    def __init__(self, data: bytes, length=None):
        super().__init__(data)
        self.headers = {} if length is None else {"Content-Length": str(length)}


def _serve(monkeypatch, data: bytes, length=None):
    calls = []

    def fake_urlopen(url, timeout=None):
        calls.append((url, timeout))
        return FakeResponse(data, length)

    monkeypatch.setattr(download.urllib.request, "urlopen", fake_urlopen)
    return calls


def test_download_reports_progress(tmp_path, monkeypatch):
    payload = b"x" * (150 * 1024)
    calls = _serve(monkeypatch, payload, len(payload))
    fractions = []

    written = download_archive("https://example.invalid/p.zip", tmp_path / "p.zip", progress=fractions.append, timeout=5)

    assert written == len(payload)
    assert (tmp_path / "p.zip").read_bytes() == payload
    assert calls == [("https://example.invalid/p.zip", 5)]
    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0
    assert len(fractions) == 3


def test_download_without_length_skips_progress(tmp_path, monkeypatch):
    _serve(monkeypatch, b"abc")
    fractions = []

    assert download_archive("http://example.invalid/p.zip", tmp_path / "p.zip", progress=fractions.append) == 3
    assert fractions == []


def test_short_transfer_is_an_error(tmp_path, monkeypatch):
    _serve(monkeypatch, b"abc", 10)

    with pytest.raises(DownloadError, match="Incomplete download"):
        download_archive("https://example.invalid/p.zip", tmp_path / "p.zip")


def test_cancelled_download(tmp_path, monkeypatch):
    _serve(monkeypatch, b"abc", 3)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(DownloadCancelledError):
        download_archive("https://example.invalid/p.zip", tmp_path / "p.zip", cancel_event=cancel)


def test_http_errors_are_wrapped(tmp_path, monkeypatch):
    def fake_urlopen(url, timeout=None):
        raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)

    monkeypatch.setattr(download.urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(DownloadError, match="404"):
        download_archive("https://example.invalid/p.zip", tmp_path / "p.zip")


def test_network_errors_are_wrapped(tmp_path, monkeypatch):
    def fake_urlopen(url, timeout=None):
        raise urllib.error.URLError("no route to host")

    monkeypatch.setattr(download.urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(DownloadError):
        download_archive("https://example.invalid/p.zip", tmp_path / "p.zip")


@pytest.mark.parametrize("url", ["file:///etc/passwd", "ftp://example.invalid/p.zip", "p.zip", ""])
def test_only_web_urls_are_allowed(url):
    with pytest.raises(DownloadError):
        check_url(url)
