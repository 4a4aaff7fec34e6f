"""
L4 Execution — Pinned release download and checksum verification.

Release archives are fetched by their exact, pinned asset name and
the binary is pulled out by its declared member path.  No searching
the extracted tree for something that looks right.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tarfile
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.services.provision.data.constants import DOWNLOAD_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseAsset:
    """A downloadable archive and where the binary sits inside it."""

    url: str
    member: str
    checksum: str | None = None   # "sha256:<hex>"

    @property
    def filename(self) -> str:
        return self.url.rsplit("/", 1)[-1]


# (asset, work_dir) -> extracted binary path
Fetcher = Callable[[ReleaseAsset, Path], Path]


def _verify_checksum(path: Path, expected: str) -> bool:
    """Verify file checksum.  Format: ``algo:hex`` (sha256, sha1, md5)."""
    algo, expected_hash = expected.split(":", 1)
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest() == expected_hash.lower()


def _download(url: str, dest: Path, *, timeout: int) -> None:
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as out:
            for chunk in iter(lambda: resp.read(65536), b""):
                out.write(chunk)
    except OSError as e:
        raise HostEnvironmentError(f"Failed to download {url}: {e}") from e


def extract_member(archive: Path, member: str, dest_dir: Path) -> Path:
    """Extract exactly ``member`` from a tar archive into ``dest_dir``.

    Raises:
        HostEnvironmentError: If the archive is unreadable or the
            member is missing / not a regular file.
    """
    try:
        with tarfile.open(archive, "r:*") as tar:
            try:
                info = tar.getmember(member)
            except KeyError:
                names = ", ".join(tar.getnames()[:10])
                raise HostEnvironmentError(
                    f"Expected '{member}' in {archive.name}, found: {names or 'nothing'}"
                ) from None
            if not info.isfile():
                raise HostEnvironmentError(f"'{member}' in {archive.name} is not a regular file")
            source = tar.extractfile(info)
            if source is None:
                raise HostEnvironmentError(f"Cannot read '{member}' from {archive.name}")
            target = dest_dir / Path(member).name
            with source, open(target, "wb") as out:
                out.write(source.read())
    except tarfile.TarError as e:
        raise HostEnvironmentError(f"Cannot open archive {archive.name}: {e}") from e
    target.chmod(0o755)
    return target


def fetch_release_binary(
    asset: ReleaseAsset,
    work_dir: Path,
    *,
    timeout: int = DOWNLOAD_TIMEOUT,
) -> Path:
    """Download ``asset`` into ``work_dir`` and return the extracted binary.

    ``work_dir`` is made world-readable so a non-root identity can copy
    the binary into place; the caller owns its lifetime.

    Raises:
        HostEnvironmentError: On download failure, checksum mismatch,
            or a missing member.
    """
    os.chmod(work_dir, 0o755)
    archive = work_dir / asset.filename

    logger.info("Downloading %s", asset.url)
    _download(asset.url, archive, timeout=timeout)

    if asset.checksum and not _verify_checksum(archive, asset.checksum):
        raise HostEnvironmentError(f"Checksum mismatch for {asset.filename} (expected {asset.checksum})")

    binary = extract_member(archive, asset.member, work_dir)
    archive.unlink()
    logger.debug("Extracted %s → %s", asset.member, binary)
    return binary
