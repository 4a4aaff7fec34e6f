"""
Tests for pinned release downloads — member extraction and checksums.
"""

import hashlib
import io
import shutil
import tarfile
from pathlib import Path
from unittest.mock import patch

import pytest

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.services.provision.execution.download import (
    ReleaseAsset,
    _verify_checksum,
    extract_member,
    fetch_release_binary,
)

BINARY = b"#!/bin/sh\necho mise 2025.9.10\n"


def _archive(path: Path, members: dict[str, bytes]) -> Path:
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return path


class TestExtractMember:
    def test_declared_member(self, tmp_path: Path):
        archive = _archive(tmp_path / "mise.tar.gz", {"mise/bin/mise": BINARY, "mise/README.md": b"hi"})
        out = tmp_path / "out"
        out.mkdir()
        binary = extract_member(archive, "mise/bin/mise", out)
        assert binary == out / "mise"
        assert binary.read_bytes() == BINARY
        assert binary.stat().st_mode & 0o777 == 0o755

    def test_missing_member_names_contents(self, tmp_path: Path):
        archive = _archive(tmp_path / "asdf.tar.gz", {"bin/asdf": BINARY})
        with pytest.raises(HostEnvironmentError, match="Expected 'asdf'.*bin/asdf"):
            extract_member(archive, "asdf", tmp_path)

    def test_not_an_archive(self, tmp_path: Path):
        bogus = tmp_path / "asdf.tar.gz"
        bogus.write_text("<html>404</html>")
        with pytest.raises(HostEnvironmentError, match="Cannot open archive"):
            extract_member(bogus, "asdf", tmp_path)


class TestChecksum:
    def test_sha256(self, tmp_path: Path):
        path = tmp_path / "f"
        path.write_bytes(BINARY)
        digest = hashlib.sha256(BINARY).hexdigest()
        assert _verify_checksum(path, f"sha256:{digest}")
        assert _verify_checksum(path, f"sha256:{digest.upper()}")
        assert not _verify_checksum(path, "sha256:" + "0" * 64)


class TestFetchReleaseBinary:
    def _fake_download(self, source: Path):
        def _download(url, dest, *, timeout):
            shutil.copy(source, dest)
        return _download

    def test_fetch_and_extract(self, tmp_path: Path):
        source = _archive(tmp_path / "src.tar.gz", {"asdf": BINARY})
        asset = ReleaseAsset(
            url="https://github.com/asdf-vm/asdf/releases/download/v0.18.0/asdf-v0.18.0-linux-amd64.tar.gz",
            member="asdf",
            checksum="sha256:" + hashlib.sha256(source.read_bytes()).hexdigest(),
        )
        work = tmp_path / "work"
        work.mkdir()
        with patch(
            "xsetup.core.services.provision.execution.download._download",
            side_effect=self._fake_download(source),
        ):
            binary = fetch_release_binary(asset, work)
        assert binary == work / "asdf"
        assert binary.read_bytes() == BINARY
        assert not (work / asset.filename).exists()

    def test_checksum_mismatch(self, tmp_path: Path):
        source = _archive(tmp_path / "src.tar.gz", {"asdf": BINARY})
        asset = ReleaseAsset(url="https://example.org/asdf.tar.gz", member="asdf", checksum="sha256:" + "0" * 64)
        work = tmp_path / "work"
        work.mkdir()
        with patch(
            "xsetup.core.services.provision.execution.download._download",
            side_effect=self._fake_download(source),
        ):
            with pytest.raises(HostEnvironmentError, match="Checksum mismatch for asdf.tar.gz"):
                fetch_release_binary(asset, work)

    def test_filename(self):
        assert ReleaseAsset(url="https://x/y/mise-v1-linux-x64.tar.gz", member="m").filename == "mise-v1-linux-x64.tar.gz"
