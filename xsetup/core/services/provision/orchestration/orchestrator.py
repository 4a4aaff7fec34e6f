"""
L5 Orchestration — Top-level coordinator.

    preflight()   every read-only check; raises before anything changes
    provision()   preflight, then the stages in fixed order under the
                  host lock:

        root bootstrap (root only) → base system → version manager
        → profile tools → post-install → cleanup

Fail-fast throughout: the first ``ProvisionError`` aborts the run.
Stages that already ran are not rolled back.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from xsetup.core.errors import HostEnvironmentError, ProvisionError
from xsetup.core.models.config import SetupConfig
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import Profile
from xsetup.core.models.run import RunRecord
from xsetup.core.persistence.run_log import RunLog
from xsetup.core.services.provision.detection.architecture import detect_architecture
from xsetup.core.services.provision.detection.identity import lookup_login_shell, resolve_identity
from xsetup.core.services.provision.detection.os_release import OsRelease, read_os_release
from xsetup.core.services.provision.domain.profile_resolution import resolve_apt_packages
from xsetup.core.services.provision.execution.download import Fetcher, fetch_release_binary
from xsetup.core.services.provision.execution.lock import host_lock
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner, SubprocessRunner
from xsetup.core.services.provision.managers import get_manager
from xsetup.core.services.provision.managers.base import ToolManager
from xsetup.core.services.provision.orchestration.base_system import (
    bootstrap_root,
    install_base_system,
)
from xsetup.core.services.provision.orchestration.cleanup import run_cleanup
from xsetup.core.services.provision.orchestration.context import HostPaths, Progress, StageContext
from xsetup.core.services.provision.orchestration.post_install import run_post_install
from xsetup.core.services.provision.orchestration.profile_applier import apply_profile
from xsetup.core.services.provision.orchestration.version_manager import install_version_manager

logger = logging.getLogger(__name__)


class ProvisionOptions(BaseModel):
    """What the caller asked for.  ``None`` means "use the config"."""

    profile: Profile | str | None = None
    manager: str | None = None
    chezmoi: str | None = None
    set_zsh_default: bool = False


class ProvisionReport(BaseModel):
    """Outcome of a successful run."""

    run_id: str
    user: str
    architecture: str
    codename: str
    profile: str
    manager: str
    stages: list[str]
    tools: list[str]
    skipped_steps: list[str]
    post_install: list[str]
    duration_ms: int


@dataclass
class Preflight:
    """Values resolved before the first mutation."""

    identity: Identity
    release: OsRelease
    arch: str
    profile: Profile
    manager: ToolManager


def _new_run_id() -> str:
    return f"run-{time.strftime('%Y%m%dT%H%M%S')}-{uuid.uuid4().hex[:6]}"


def preflight(
    options: ProvisionOptions,
    config: SetupConfig,
    *,
    runner: CommandRunner,
    paths: HostPaths,
    identity: Identity | None = None,
    machine: str | None = None,
) -> Preflight:
    """Validate input and host before anything is changed.

    Raises:
        ConfigError: Invalid profile/manager, unknown user, non-Ubuntu
            host, unsupported architecture, or no release asset for it.
        HostEnvironmentError: Not root and ``sudo`` is missing.
    """
    profile = Profile.parse(options.profile if options.profile is not None else config.profile)
    manager = get_manager(options.manager or config.manager.name, config.manager)

    identity = identity or resolve_identity()

    if not runner.is_root and runner.which("sudo") is None:
        raise HostEnvironmentError("sudo is required when not running as root, but it is not installed")

    release = read_os_release(paths.os_release)
    arch = detect_architecture(machine)
    manager.release_asset(arch)

    logger.info(
        "Pre-flight OK: %s %s (%s), profile=%s, manager=%s %s, user=%s",
        release.id, release.version_codename, arch, profile.value,
        manager.name, manager.version, identity.name,
    )
    return Preflight(identity=identity, release=release, arch=arch, profile=profile, manager=manager)


def provision(
    options: ProvisionOptions,
    config: SetupConfig | None = None,
    *,
    runner: CommandRunner | None = None,
    paths: HostPaths | None = None,
    fetcher: Fetcher | None = None,
    identity: Identity | None = None,
    machine: str | None = None,
    progress: Progress | None = None,
    current_shell: Callable[[str], str] = lookup_login_shell,
) -> ProvisionReport:
    """Provision the host for the target identity.

    Args:
        options: Profile / manager / post-install flags.
        config: Loaded configuration (defaults when None).
        runner: Host collaborator (real subprocesses when None).
        paths: System path root (``/`` when None).
        fetcher: Release downloader (HTTPS when None).
        identity: Skip identity resolution (tests).
        machine: Override ``platform.machine()`` (tests).
        progress: ``(kind, message)`` callback for user-facing lines.

    Raises:
        ProvisionError: On the first failure, after the run record is
            written.
    """
    config = config or SetupConfig()
    runner = runner or SubprocessRunner()
    paths = paths or HostPaths()

    start = time.monotonic()
    run_id = _new_run_id()

    pre = preflight(options, config, runner=runner, paths=paths, identity=identity, machine=machine)

    ctx = StageContext(
        runner=runner,
        identity=pre.identity,
        arch=pre.arch,
        codename=pre.release.version_codename,
        profile=pre.profile,
        manager=pre.manager,
        config=config,
        paths=paths,
        fetcher=fetcher or fetch_release_binary,
        progress=progress or (lambda kind, message: None),
    )

    stages: list[str] = []
    tools: list[str] = []
    skipped: list[str] = []
    post: list[str] = []
    log = RunLog.for_identity(pre.identity, runner) if config.history else None

    def _record(status: str, error: str | None = None) -> None:
        if log is None:
            return
        log.write(RunRecord(
            run_id=run_id,
            profile=pre.profile.value,
            manager=pre.manager.name,
            user=pre.identity.name,
            architecture=pre.arch,
            status=status,
            stages=list(stages),
            tools=list(tools),
            duration_ms=int((time.monotonic() - start) * 1000),
            error=error,
        ))

    try:
        with host_lock(paths.lock_file):
            if runner.is_root:
                bootstrap_root(ctx)
                stages.append("bootstrap")

            install_base_system(ctx, resolve_apt_packages(pre.profile))
            stages.append("base-system")

            install_version_manager(ctx)
            stages.append("version-manager")

            report = apply_profile(ctx)
            tools.extend(report.installed)
            skipped.extend(report.skipped)
            stages.append("profile")

            post.extend(run_post_install(
                ctx,
                chezmoi=options.chezmoi,
                set_zsh_default=options.set_zsh_default,
                current_shell=current_shell,
            ))
            stages.append("post-install")

            run_cleanup(ctx)
            stages.append("cleanup")
    except ProvisionError as e:
        logger.error("Run %s failed after stages %s: %s", run_id, stages or "(none)", e)
        _record("failed", str(e))
        raise

    _record("ok")
    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info("Run %s complete in %dms", run_id, duration_ms)

    return ProvisionReport(
        run_id=run_id,
        user=pre.identity.name,
        architecture=pre.arch,
        codename=pre.release.version_codename,
        profile=pre.profile.value,
        manager=pre.manager.name,
        stages=stages,
        tools=tools,
        skipped_steps=skipped,
        post_install=post,
        duration_ms=duration_ms,
    )
