"""
L5 Orchestration — Install the profile's tools through the manager.
"""

from __future__ import annotations

import logging

from xsetup.core.errors import ConfigError, HostEnvironmentError
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import Profile
from xsetup.core.models.task import Task, ToolState
from xsetup.core.services.provision.domain.profile_resolution import (
    resolve_profile,
    unmet_requirements,
)
from xsetup.core.services.provision.execution.task_runner import TaskReport, run_task
from xsetup.core.services.provision.managers.base import ToolManager
from xsetup.core.services.provision.orchestration.context import StageContext

logger = logging.getLogger(__name__)


def build_profile_task(manager: ToolManager, identity: Identity, profile: Profile | str) -> Task:
    """The full install task for a profile.  Pure: nothing is run.

    Raises:
        ConfigError: For an unknown profile, or a tool that depends on a
            runtime the profile does not install.
    """
    profile = Profile.parse(profile)
    specs = resolve_profile(profile)
    missing = unmet_requirements(specs)
    if missing:
        detail = ", ".join(f"{tool} needs {req}" for tool, req in missing.items())
        raise ConfigError(f"Profile '{profile.value}' is not self-contained: {detail}")
    return manager.build_task(identity, specs, name=f"{manager.name}:{profile.value}")


def apply_profile(ctx: StageContext) -> TaskReport:
    """Run the profile task as the identity, fail-fast.

    Raises:
        HostEnvironmentError: If the manager command does not resolve in
            the activated environment.
        CommandError: On the first failing step.
    """
    task = build_profile_task(ctx.manager, ctx.identity, ctx.profile)

    if ctx.runner.resolve_as(ctx.identity, ctx.manager.name, env=task.env) is None:
        raise HostEnvironmentError(
            f"'{ctx.manager.name}' is not resolvable for {ctx.identity.name} "
            f"with PATH={task.env.get('PATH', '')}"
        )

    def _on_tool(tool: str, state: ToolState) -> None:
        if state == ToolState.INSTALLING:
            ctx.step(f"Installing {tool}")
        elif state == ToolState.INSTALLED:
            ctx.ok(f"{tool} installed")

    report = run_task(ctx.runner, ctx.identity, task, on_tool=_on_tool)
    logger.info(
        "Profile %s: %d tools, %d steps run, %d skipped",
        ctx.profile.value, len(report.installed), len(report.executed), len(report.skipped),
    )
    return report
