"""
Error taxonomy for a provisioning run.

Every failure that should stop a run is a ``ProvisionError``.  The
CLI catches exactly this type, prints one ``❌`` line on stderr and
exits 1.  Nothing in the core catches it to carry on.

    ConfigError           — bad input or unsupported host, raised before
                            any mutating action where possible
    HostEnvironmentError  — the host is missing something a stage needs
    CommandError          — an external command exited nonzero
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for every fatal provisioning condition."""

    exit_code = 1


class ConfigError(ProvisionError):
    """Raised when configuration is invalid or the host is unsupported."""


class HostEnvironmentError(ProvisionError):
    """Raised when an expected binary, path or privilege is not present."""


class CommandError(ProvisionError):
    """Raised when an external command exits with a nonzero status."""

    def __init__(
        self,
        argv: list[str],
        returncode: int,
        stderr: str = "",
        *,
        message: str | None = None,
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        if message is None:
            message = f"Command failed (exit {returncode}): {' '.join(self.argv)}"
            tail = stderr.strip().splitlines()[-1:] if stderr else []
            if tail:
                message = f"{message} — {tail[0]}"
        super().__init__(message)
