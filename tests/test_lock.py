"""
Tests for the host-wide run lock.
"""

import os
from pathlib import Path

import pytest

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.services.provision.execution.lock import host_lock


class TestHostLock:
    def test_acquire_and_release(self, tmp_path: Path):
        path = tmp_path / "run" / "lock" / "xsetup.lock"
        with host_lock(path) as held:
            assert held == path
            assert path.read_text() == str(os.getpid())
        with host_lock(path):
            pass

    def test_second_holder_rejected(self, tmp_path: Path):
        path = tmp_path / "xsetup.lock"
        with host_lock(path):
            with pytest.raises(HostEnvironmentError, match="Another xsetup run is active.*xsetup.lock"):
                with host_lock(path):
                    pass

    def test_new_lock_file_is_shared(self, tmp_path: Path):
        path = tmp_path / "xsetup.lock"
        old_umask = os.umask(0o022)
        try:
            with host_lock(path):
                pass
        finally:
            os.umask(old_umask)
        assert path.stat().st_mode & 0o777 == 0o666

    def test_foreign_lock_file_locked_read_only(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "xsetup.lock"
        path.write_text("4242")
        path.chmod(0o444)
        real_open = os.open

        def _no_write(file, flags, *args):
            if flags & os.O_RDWR:
                raise PermissionError(13, "Permission denied", str(file))
            return real_open(file, flags, *args)

        monkeypatch.setattr(os, "open", _no_write)

        with host_lock(path):
            with pytest.raises(HostEnvironmentError, match="PID 4242"):
                with host_lock(path):
                    pass
        assert path.read_text() == "4242"

    def test_unopenable(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(HostEnvironmentError, match="Cannot open lock file"):
            with host_lock(blocker / "xsetup.lock"):
                pass
