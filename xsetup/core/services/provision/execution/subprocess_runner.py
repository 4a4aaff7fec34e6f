"""
L4 Execution — Command runner and privileged file operations.

The SINGLE PLACE where the host is touched.  Stages never call
``subprocess`` or write outside their own process; they ask a
``CommandRunner`` to:

    run(argv)                   — as the current process
    run_as_root(argv)           — directly when root, else through sudo
    run_as(identity, argv)      — directly when we ARE that user, else
                                  runuser (from root) / sudo -u (otherwise)

and to write/copy/remove files with a given owner.  Choosing the
escalation mechanism is the runner's job, so orchestration code reads
the same whoever launched it.

Test doubles subclass ``CommandRunner``, record argv lists instead of
executing them, and do file operations directly under ``tmp_path``.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from xsetup.core.errors import CommandError
from xsetup.core.models.identity import Identity
from xsetup.core.services.provision.data.constants import SYSTEM_PATH
from xsetup.core.services.provision.detection.identity import current_user_name

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60


@dataclass
class CommandResult:
    """Outcome of one command. ``stdout``/``stderr`` are empty when streamed."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> list[str]:
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]

    def check(self) -> CommandResult:
        """Return self, or raise ``CommandError`` on a nonzero exit."""
        if not self.ok:
            raise CommandError(self.argv, self.returncode, self.stderr)
        return self


def user_environment(identity: Identity, env: dict[str, str] | None = None) -> dict[str, str]:
    """Environment bindings for a command run as ``identity``."""
    merged = {
        "HOME": str(identity.home),
        "USER": identity.name,
        "LOGNAME": identity.name,
        "PATH": SYSTEM_PATH,
    }
    if env:
        merged.update(env)
    return merged


class CommandRunner(ABC):
    """Host collaborator: commands and file operations with an owner."""

    # ── Subclass hooks ─────────────────────────────────────────

    @property
    @abstractmethod
    def is_root(self) -> bool:
        """Whether this process already has root privileges."""

    @abstractmethod
    def acting_as(self, identity: Identity) -> bool:
        """Whether this process already runs as ``identity``."""

    @abstractmethod
    def _execute(
        self,
        argv: list[str],
        *,
        env: dict[str, str] | None,
        input: str | None,
        cwd: Path | None,
        timeout: int | None,
        capture: bool,
    ) -> CommandResult:
        """Run a fully-prefixed argv. Never raises for a nonzero exit."""

    def _writes_directly(self, owner: Identity | None) -> bool:
        """Whether a file operation for ``owner`` (None = root) can skip escalation."""
        if owner is None:
            return self.is_root
        return self.acting_as(owner)

    # ── Commands ───────────────────────────────────────────────

    def run(
        self,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
        input: str | None = None,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        """Run ``argv`` as the current process."""
        full_env = {**os.environ, **env} if env else None
        result = self._execute(
            list(argv), env=full_env, input=input, cwd=cwd,
            timeout=timeout, capture=capture,
        )
        return result.check() if check else result

    def run_as_root(
        self,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
        input: str | None = None,
        timeout: int | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        """Run ``argv`` with root privileges."""
        if self.is_root:
            return self.run(argv, env=env, input=input, timeout=timeout, check=check, capture=capture)
        bindings = [f"{k}={v}" for k, v in (env or {}).items()]
        prefixed = ["sudo", "env", *bindings, *argv] if bindings else ["sudo", *argv]
        result = self._execute(
            prefixed, env=None, input=input, cwd=None, timeout=timeout, capture=capture,
        )
        return result.check() if check else result

    def run_as(
        self,
        identity: Identity,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
        input: str | None = None,
        timeout: int | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> CommandResult:
        """Run ``argv`` as ``identity`` with ``env`` on top of a clean user env.

        The working directory is the identity's home, which the target
        user can always enter (the caller's cwd may be ``/root``).
        """
        bindings = user_environment(identity, env)
        cwd = identity.home if identity.home.is_dir() else None

        if self.acting_as(identity):
            result = self._execute(
                list(argv), env={**os.environ, **bindings}, input=input, cwd=cwd,
                timeout=timeout, capture=capture,
            )
        else:
            assignments = [f"{k}={v}" for k, v in bindings.items()]
            if self.is_root:
                switch = ["runuser", "-u", identity.name, "--"]
            else:
                switch = ["sudo", "-H", "-u", identity.name]
            result = self._execute(
                [*switch, "env", *assignments, *argv], env=None, input=input, cwd=cwd,
                timeout=timeout, capture=capture,
            )
        return result.check() if check else result

    def probe_as(
        self,
        identity: Identity,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Unchecked, captured ``run_as`` for read-only questions."""
        return self.run_as(identity, argv, env=env, timeout=PROBE_TIMEOUT, check=False, capture=True)

    def which(self, name: str) -> str | None:
        """Resolve ``name`` on this process's PATH."""
        return shutil.which(name)

    def resolve_as(
        self,
        identity: Identity,
        name: str,
        *,
        env: dict[str, str] | None = None,
    ) -> str | None:
        """Resolve ``name`` on PATH the way ``identity`` would see it in ``env``."""
        result = self.probe_as(identity, ["sh", "-c", f"command -v {shlex.quote(name)}"], env=env)
        if not result.ok or not result.lines:
            return None
        return result.lines[0]

    # ── Files ──────────────────────────────────────────────────

    def _file_command(self, owner: Identity | None, argv: list[str], *, input: str | None = None) -> None:
        if owner is None:
            self.run_as_root(argv, input=input, capture=True)
        else:
            self.run_as(owner, argv, input=input, capture=True)

    def write_file(
        self,
        path: Path,
        content: str,
        *,
        owner: Identity | None = None,
        append: bool = False,
    ) -> None:
        """Write (or append) ``content`` to ``path`` as ``owner`` (None = root)."""
        logger.debug("%s %s (owner=%s)", "Append" if append else "Write", path, owner or "root")
        if self._writes_directly(owner):
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a" if append else "w", encoding="utf-8") as f:
                f.write(content)
            return
        self._file_command(owner, ["mkdir", "-p", str(path.parent)])
        self._file_command(owner, ["tee", *(["-a"] if append else []), str(path)], input=content)

    def copy_file(self, src: Path, dst: Path, *, owner: Identity | None = None) -> None:
        """Copy ``src`` to ``dst`` preserving mode and timestamps."""
        logger.debug("Copy %s → %s (owner=%s)", src, dst, owner or "root")
        if self._writes_directly(owner):
            shutil.copy2(src, dst)
            return
        self._file_command(owner, ["cp", "-p", str(src), str(dst)])

    def remove_tree(self, path: Path, *, owner: Identity | None = None) -> None:
        """Recursively remove ``path`` (file, symlink or directory)."""
        logger.debug("Remove %s (owner=%s)", path, owner or "root")
        if self._writes_directly(owner):
            if path.is_symlink() or path.is_file():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)
            return
        self._file_command(owner, ["rm", "-rf", "--", str(path)])

    def install_executable(self, src: Path, dest: Path, *, owner: Identity | None = None) -> None:
        """Place ``src`` at ``dest`` with mode 0755, creating parents."""
        logger.debug("Install %s → %s (owner=%s)", src, dest, owner or "root")
        if self._writes_directly(owner):
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dest)
            dest.chmod(0o755)
            return
        self._file_command(owner, ["install", "-D", "-m", "0755", str(src), str(dest)])

    def symlink(self, target: Path, link: Path, *, owner: Identity | None = None) -> None:
        """Point ``link`` at ``target``, replacing an existing link."""
        if self._writes_directly(owner):
            link.parent.mkdir(parents=True, exist_ok=True)
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(target)
            return
        self._file_command(owner, ["ln", "-sf", str(target), str(link)])


class SubprocessRunner(CommandRunner):
    """Runs commands on the real host with ``subprocess.run``.

    Args:
        stream: Let commands write straight to the terminal (apt and
            compiler output) unless the caller needs the output.
        euid: Override the effective UID (defaults to ``os.geteuid()``).
    """

    def __init__(self, *, stream: bool = True, euid: int | None = None) -> None:
        self._stream = stream
        self._euid = os.geteuid() if euid is None else euid
        self._user = current_user_name(self._euid)

    @property
    def is_root(self) -> bool:
        return self._euid == 0

    def acting_as(self, identity: Identity) -> bool:
        return identity.name == self._user

    def _execute(
        self,
        argv: list[str],
        *,
        env: dict[str, str] | None,
        input: str | None,
        cwd: Path | None,
        timeout: int | None,
        capture: bool,
    ) -> CommandResult:
        capture = capture or not self._stream
        logger.debug("Executing: %s", shlex.join(argv))
        start = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                input=input,
                capture_output=capture,
                stdin=subprocess.DEVNULL if input is None else None,
                text=True,
                env=env,
                cwd=str(cwd) if cwd else None,
                timeout=timeout,
            )
        except FileNotFoundError:
            raise CommandError(argv, 127, message=f"Command not found: {argv[0]}") from None
        except subprocess.TimeoutExpired:
            raise CommandError(argv, -1, message=f"Command timed out ({timeout}s): {shlex.join(argv)}") from None

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            argv=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            elapsed_ms=elapsed_ms,
        )
        if result.ok:
            logger.debug("Finished in %dms: %s", elapsed_ms, argv[0])
        else:
            logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, shlex.join(argv))
        return result
