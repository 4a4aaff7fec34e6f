"""
Logging configuration — set up once per process by ``xsetup.main``.

Modules log through ``logging.getLogger(__name__)``; the CLI prints
the human-facing ››› / ✅ / ❌ status lines itself, so the console
handler stays quiet (WARNING) unless asked otherwise.

Level precedence:
    --debug  >  --verbose  >  --quiet  >  XSETUP_LOG_LEVEL  >  WARNING

A full-detail copy can be written to XSETUP_LOG_FILE, at
XSETUP_LOG_FILE_LEVEL (defaults to the console level).  Provisioning
runs are long and mostly silent, so a DEBUG file log is the usual
way to see every command that was executed.  Under ``sudo`` the log
file is handed back to the invoking user, who can then read and
remove it without root.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# ── Formats ────────────────────────────────────────────────────

# (highest level the format applies to, format, datefmt); first match wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(process)d %(levelname)-5s %(name)s — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# urllib emits connection chatter during release downloads
_NOISY_LOGGERS = ("urllib3", "urllib.request")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a log file that receives full detail.
            Parent directories are created.  A file that cannot be
            opened is reported on the console and the run goes on
            without it.
        log_file_level: Level for the file handler; defaults to ``level``.
        quiet_third_party: Hold noisy library loggers at WARNING unless
            the console is at DEBUG.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))
    root.setLevel(console_level)

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = _file_handler(Path(log_file).expanduser(), file_level)
        if handler is not None:
            root.addHandler(handler)
            root.setLevel(min(console_level, file_level))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for limit, f, d in _CONSOLE_FORMATS if level <= limit)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning("Cannot open log file %s: %s", path, e)
        return None
    _hand_to_invoker(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _hand_to_invoker(path: Path, environ: dict[str, str] | None = None) -> None:
    """chown a root-created log file to the user who ran ``sudo``."""
    env = os.environ if environ is None else environ
    uid, gid = env.get("SUDO_UID", ""), env.get("SUDO_GID", "")
    if os.geteuid() != 0 or not uid.isdigit() or not gid.isdigit():
        return
    try:
        os.chown(path, int(uid), int(gid))
    except OSError as e:
        logging.getLogger(__name__).warning("Cannot hand log file %s to uid %s: %s", path, uid, e)


def _parse_level(level: str | None) -> int:
    """Convert a level name to its numeric value (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    return logging.getLevelNamesMapping().get(level.upper(), logging.WARNING)
