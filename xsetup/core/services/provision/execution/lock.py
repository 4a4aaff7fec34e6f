"""
L4 Execution — Host-wide run lock.

The package database and the version-manager directory are mutated
in place with no locking of their own, so only one run may be active
on a host.  An exclusive ``flock`` makes that explicit.
"""

from __future__ import annotations

import fcntl
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from xsetup.core.errors import HostEnvironmentError

logger = logging.getLogger(__name__)


@contextmanager
def host_lock(path: Path) -> Iterator[Path]:
    """Hold an exclusive, non-blocking lock on ``path`` for the block.

    Raises:
        HostEnvironmentError: If the lock file cannot be opened or
            another run already holds it.
    """
    fd, writable = _open_lock_file(path)

    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            holder = _read_pid(fd)
            detail = f" (PID {holder})" if holder else ""
            raise HostEnvironmentError(
                f"Another xsetup run is active{detail}; lock held on {path}"
            ) from None

        if writable:
            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode())
        logger.debug("Acquired host lock %s", path)
        try:
            yield path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released host lock %s", path)
    finally:
        os.close(fd)


def _open_lock_file(path: Path) -> tuple[int, bool]:
    """Open (creating if needed) the lock file; returns (fd, writable).

    Root and user runs share one lock file, so a new file is made
    world-writable, and a file we may not write is locked read-only.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o666)
        except PermissionError:
            logger.debug("Lock file %s is not writable, locking it read-only", path)
            return os.open(path, os.O_RDONLY), False
    except OSError as e:
        raise HostEnvironmentError(f"Cannot open lock file {path}: {e}") from e

    try:
        if os.fstat(fd).st_uid == os.geteuid():
            os.fchmod(fd, 0o666)
    except OSError as e:
        os.close(fd)
        raise HostEnvironmentError(f"Cannot make lock file {path} shareable: {e}") from e
    return fd, True


def _read_pid(fd: int) -> str:
    try:
        os.lseek(fd, 0, os.SEEK_SET)
        return os.read(fd, 32).decode().strip()
    except OSError:
        return ""
