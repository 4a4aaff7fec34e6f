"""
L5 Orchestration — Privileged base system.

Two stages, both run as root:

    bootstrap_root(ctx)        only when the run itself is root: official
                               sources + sudo/curl/git so the rest works
    install_base_system(ctx)   mirror sources, index refresh, build deps

Every source file is backed up exactly once before its first rewrite.
An existing ``.bak`` is never overwritten, so repeated runs keep the
host's original configuration recoverable.
"""

from __future__ import annotations

import logging
from pathlib import Path

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.services.provision.data.apt import APT_ENV, BASE_PACKAGES, BOOTSTRAP_PACKAGES
from xsetup.core.services.provision.data.constants import BACKUP_SUFFIX, DISABLED_SOURCES_STUB
from xsetup.core.services.provision.domain.sources import (
    render_bootstrap_sources,
    render_sources_list,
)
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner
from xsetup.core.services.provision.orchestration.context import StageContext

logger = logging.getLogger(__name__)

_SOURCE_SUFFIXES = (".list", ".sources")


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def backup_once(runner: CommandRunner, path: Path) -> bool:
    """Copy ``path`` to ``path.bak`` unless the backup already exists.

    Returns:
        True if a backup was made.
    """
    backup = backup_path(path)
    if backup.exists():
        logger.debug("Backup %s already exists, keeping it", backup)
        return False
    if not path.exists():
        return False
    runner.copy_file(path, backup)
    logger.info("Backed up %s → %s", path, backup)
    return True


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8") if path.is_file() else None
    except OSError as e:
        raise HostEnvironmentError(f"Cannot read {path}: {e}") from e


def disable_source_file(runner: CommandRunner, path: Path) -> bool:
    """Back up a source file once and replace it by a disabled stub."""
    current = _read(path)
    if current is None or current == DISABLED_SOURCES_STUB:
        return False
    backup_once(runner, path)
    runner.write_file(path, DISABLED_SOURCES_STUB)
    logger.info("Disabled %s", path)
    return True


def write_sources(runner: CommandRunner, path: Path, content: str) -> bool:
    """Back up ``sources.list`` once, then write ``content`` if it differs."""
    backup_once(runner, path)
    if _read(path) == content:
        logger.debug("%s already up to date", path)
        return False
    runner.write_file(path, content)
    return True


def apt_get(runner: CommandRunner, *args: str) -> None:
    runner.run_as_root(["apt-get", *args], env=APT_ENV)


# ── Stages ─────────────────────────────────────────────────────


def bootstrap_root(ctx: StageContext) -> None:
    """Make a bare root environment able to run the rest of the setup.

    Third-party source files are disabled (backed up once), the official
    archive is configured, and the bootstrap packages are installed.
    """
    runner, paths = ctx.runner, ctx.paths

    ctx.step("Bootstrapping root environment")
    if paths.sources_dir.is_dir():
        for source in sorted(paths.sources_dir.iterdir()):
            if source.suffix in _SOURCE_SUFFIXES and source.is_file():
                disable_source_file(runner, source)

    write_sources(runner, paths.sources_list, render_bootstrap_sources(ctx.arch, ctx.codename))
    apt_get(runner, "update", "-qq")
    apt_get(runner, "install", "-y", "-qq", *BOOTSTRAP_PACKAGES)
    ctx.ok("Root bootstrap complete")


def link_fd(ctx: StageContext) -> bool:
    """Expose Ubuntu's ``fdfind`` under its upstream name ``fd``."""
    target, link = ctx.paths.fdfind, ctx.paths.fd_link
    if not target.exists():
        raise HostEnvironmentError(f"Expected {target} after installing fd-find, but it is missing")
    if link.is_symlink() and link.resolve() == target.resolve():
        return False
    ctx.runner.symlink(target, link)
    return True


def install_base_system(ctx: StageContext, extra_packages: list[str] | None = None) -> None:
    """Configure mirror sources and install the OS build dependencies."""
    runner, paths = ctx.runner, ctx.paths

    ctx.step(f"Configuring APT sources for {ctx.codename} ({ctx.arch}, mirror: {ctx.config.apt.mirror})")
    disable_source_file(runner, paths.default_sources)
    sources = render_sources_list(ctx.arch, ctx.codename, mirror=ctx.config.apt.mirror)
    write_sources(runner, paths.sources_list, sources)

    ctx.step("Refreshing package index")
    apt_get(runner, "update")

    packages = [*BASE_PACKAGES, *(p for p in extra_packages or [] if p not in BASE_PACKAGES)]
    ctx.step(f"Installing {len(packages)} system packages")
    apt_get(runner, "install", "-y", "--no-install-recommends", *packages)

    link_fd(ctx)
    ctx.ok("System packages installed")
