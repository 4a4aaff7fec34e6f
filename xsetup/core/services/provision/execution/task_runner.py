"""
L4 Execution — Task runner.

Executes a ``Task`` step by step as the target identity, inside the
task's declared environment.  Fail-fast: the first failing step raises
and nothing after it runs.  No retries.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.models.identity import Identity
from xsetup.core.models.task import Step, Task, ToolState
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)

ToolEvent = Callable[[str, ToolState], None]


@dataclass
class TaskReport:
    """What a task run did."""

    task: str
    tool_states: dict[str, ToolState] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def installed(self) -> list[str]:
        return [t for t, s in self.tool_states.items() if s == ToolState.INSTALLED]


def _probe_satisfied(runner: CommandRunner, identity: Identity, step: Step, env: dict[str, str]) -> bool:
    if step.skip_if is None:
        return False
    result = runner.probe_as(identity, step.skip_if.argv, env=env)
    return result.ok and step.skip_if.line in result.lines


def _check_requirements(runner: CommandRunner, identity: Identity, step: Step, env: dict[str, str]) -> None:
    for command in step.requires:
        if runner.resolve_as(identity, command, env=env) is None:
            raise HostEnvironmentError(
                f"'{command}' is not on PATH for {identity.name} before step "
                f"'{step.label}' (PATH={env.get('PATH', '')})"
            )
    for argv in step.checks:
        result = runner.probe_as(identity, argv, env=env)
        if not result.ok:
            raise HostEnvironmentError(
                f"'{shlex.join(argv)}' failed for {identity.name} before step "
                f"'{step.label}' (exit {result.returncode}): {result.stderr.strip()}"
            )


def run_task(
    runner: CommandRunner,
    identity: Identity,
    task: Task,
    *,
    on_tool: ToolEvent | None = None,
) -> TaskReport:
    """Run every step of ``task`` as ``identity``.

    Args:
        on_tool: Called on each tool state transition
            (``installing`` when its first step starts, ``installed``
            after its last step).

    Raises:
        HostEnvironmentError: A step's required command is not resolvable.
        CommandError: A step exited nonzero.
    """
    report = TaskReport(task=task.name)
    for tool in task.tools:
        report.tool_states[tool] = ToolState.PENDING

    def _transition(tool: str, state: ToolState) -> None:
        report.tool_states[tool] = state
        logger.info("%s: %s", tool, state.value)
        if on_tool:
            on_tool(tool, state)

    for index, step in enumerate(task.steps):
        if step.tool and report.tool_states[step.tool] == ToolState.PENDING:
            _transition(step.tool, ToolState.INSTALLING)

        _check_requirements(runner, identity, step, task.env)
        if _probe_satisfied(runner, identity, step, task.env):
            logger.debug("Skipping '%s' (already satisfied)", step.label)
            report.skipped.append(step.label)
        else:
            logger.debug("Step '%s': %s", step.label, shlex.join(step.argv))
            runner.run_as(identity, step.argv, env=task.env, timeout=step.timeout)
            report.executed.append(step.label)

        if step.tool and task.last_step_index(step.tool) == index:
            _transition(step.tool, ToolState.INSTALLED)

    return report
