"""
L5 Orchestration — Version-manager installation.

Steps, all acting for the target identity:

    1. Remove conflicting installations (the other manager, or a legacy
       layout of this one).  Old and new managers never coexist.
    2. Place the pinned release binary, unless the installed one
       already reports the pinned version.
    3. Verify the binary exists and runs.  Anything else is fatal.
    4. Write the activation stanza into the shell rc file.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.services.provision.execution.rc_file import configure_rc_file
from xsetup.core.services.provision.managers import MANAGERS
from xsetup.core.services.provision.orchestration.context import StageContext

logger = logging.getLogger(__name__)


@dataclass
class ManagerInstall:
    """What the version-manager stage changed."""

    binary: Path
    removed: list[Path] = field(default_factory=list)
    downloaded: bool = False
    rc_changed: bool = False


def rc_shell(rc_file: str) -> str:
    """Shell whose activation syntax the rc file needs."""
    return "bash" if "bash" in Path(rc_file).name else "zsh"


def installed_version_matches(ctx: StageContext, binary: Path) -> bool:
    if not binary.is_file():
        return False
    result = ctx.runner.probe_as(
        ctx.identity, [str(binary), "--version"], env=ctx.manager.environment(ctx.identity),
    )
    return result.ok and ctx.manager.version_matches(result.stdout)


def install_version_manager(ctx: StageContext) -> ManagerInstall:
    """Install ``ctx.manager`` into the identity's home.

    Raises:
        HostEnvironmentError: If the binary is missing or does not run
            after installation.
    """
    manager, identity, runner = ctx.manager, ctx.identity, ctx.runner
    binary = manager.binary_path(identity)
    outcome = ManagerInstall(binary=binary)

    for path in manager.conflicting_paths(identity):
        ctx.step(f"Removing conflicting installation {path}")
        runner.remove_tree(path, owner=identity)
        outcome.removed.append(path)

    if installed_version_matches(ctx, binary):
        logger.info("%s %s already installed at %s", manager.name, manager.version, binary)
    else:
        asset = manager.release_asset(ctx.arch)
        ctx.step(f"Installing {manager.name} {manager.version}")
        with tempfile.TemporaryDirectory(prefix="xsetup-") as work:
            downloaded = ctx.fetcher(asset, Path(work))
            runner.install_executable(downloaded, binary, owner=identity)
        outcome.downloaded = True

    if not binary.is_file():
        raise HostEnvironmentError(
            f"{manager.name} binary not found at {binary} after installation"
        )
    check = runner.probe_as(identity, [str(binary), "--version"], env=manager.environment(identity))
    if not check.ok:
        raise HostEnvironmentError(
            f"{manager.name} at {binary} does not run (exit {check.returncode}): {check.stderr.strip()}"
        )

    rc_path = identity.home_path(ctx.config.rc_file)
    others = tuple(name for name in MANAGERS if name != manager.name)
    outcome.rc_changed = configure_rc_file(
        runner,
        identity,
        rc_path,
        manager.rc_stanza(identity, rc_shell(ctx.config.rc_file)),
        replaces=others,
    )

    ctx.ok(f"{manager.name} {manager.version} ready at {binary}")
    return outcome
