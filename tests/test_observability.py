"""
Tests for observability — logging levels and handlers.
"""

import logging

import pytest

from xsetup.core.observability import logging_config
from xsetup.core.observability.logging_config import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_default(self):
        assert resolve_level() == "WARNING"

    def test_env(self):
        assert resolve_level(env_level="INFO") == "INFO"

    def test_flags_beat_env(self):
        assert resolve_level(quiet=True, env_level="DEBUG") == "ERROR"
        assert resolve_level(verbose=True, quiet=True) == "INFO"
        assert resolve_level(debug=True, verbose=True) == "DEBUG"


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_unknown_level_falls_back(self):
        setup_logging("CHATTY")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler_gets_more_detail(self, tmp_path):
        log_file = tmp_path / "xsetup.log"
        setup_logging("WARNING", str(log_file), "DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert [h.level for h in root.handlers] == [logging.WARNING, logging.DEBUG]

        logging.getLogger("xsetup.test").debug("apt-get update")
        for handler in root.handlers:
            handler.flush()
        assert "apt-get update" in log_file.read_text()
        root.handlers[1].close()

    def test_log_file_parent_created(self, tmp_path):
        log_file = tmp_path / "logs" / "nested" / "xsetup.log"
        setup_logging("WARNING", str(log_file), "INFO")

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert log_file.exists()
        root.handlers[1].close()

    def test_unopenable_log_file_keeps_console(self, tmp_path, capsys):
        blocker = tmp_path / "file"
        blocker.write_text("")
        setup_logging("WARNING", str(blocker / "xsetup.log"), "DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert "Cannot open log file" in capsys.readouterr().err


class TestHandToInvoker:
    def test_chowns_to_sudo_user_when_root(self, tmp_path, monkeypatch):
        log_file = tmp_path / "xsetup.log"
        log_file.write_text("")
        calls = []
        monkeypatch.setattr(logging_config.os, "geteuid", lambda: 0)
        monkeypatch.setattr(logging_config.os, "chown", lambda p, u, g: calls.append((p, u, g)))

        logging_config._hand_to_invoker(log_file, {"SUDO_UID": "1000", "SUDO_GID": "1000"})

        assert calls == [(log_file, 1000, 1000)]

    def test_leaves_file_alone_without_sudo(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(logging_config.os, "geteuid", lambda: 0)
        monkeypatch.setattr(logging_config.os, "chown", lambda p, u, g: calls.append((p, u, g)))

        logging_config._hand_to_invoker(tmp_path / "xsetup.log", {})

        assert calls == []

    def test_leaves_file_alone_when_not_root(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(logging_config.os, "geteuid", lambda: 1000)
        monkeypatch.setattr(logging_config.os, "chown", lambda p, u, g: calls.append((p, u, g)))

        logging_config._hand_to_invoker(tmp_path / "xsetup.log", {"SUDO_UID": "1000", "SUDO_GID": "1000"})

        assert calls == []
