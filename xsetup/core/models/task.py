"""
Task and Step — a serializable unit of work run as the target identity.

A Task replaces "pipe a heredoc script into ``sudo -iu user bash``":
instead of re-deriving PATH inside a nested shell, the environment is
declared up front and every step is an argv list.  Tasks are built by
the tool managers (pure) and executed by ``execution/task_runner.py``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ToolState(str, Enum):
    """Per-tool progress. No transition back out of ``installing``."""

    PENDING = "pending"
    INSTALLING = "installing"
    INSTALLED = "installed"


class Probe(BaseModel):
    """A read-only command whose output decides whether a step is needed.

    The step is skipped when any stripped output line equals ``line``.
    A probe that exits nonzero counts as "not satisfied".
    """

    argv: list[str]
    line: str


class Step(BaseModel):
    """One command of a task."""

    label: str
    argv: list[str]
    tool: str | None = None           # None for activation/housekeeping steps
    skip_if: Probe | None = None
    requires: list[str] = Field(default_factory=list)   # commands that must resolve first
    checks: list[list[str]] = Field(default_factory=list)  # read-only commands that must exit 0 first
    timeout: int = 3600               # source builds (python, llvm) are slow


class Task(BaseModel):
    """Ordered steps plus the environment they run in."""

    name: str
    env: dict[str, str] = Field(default_factory=dict)
    steps: list[Step] = Field(default_factory=list)

    @property
    def tools(self) -> list[str]:
        """Tools touched by this task, in first-seen order."""
        seen: list[str] = []
        for step in self.steps:
            if step.tool and step.tool not in seen:
                seen.append(step.tool)
        return seen

    def last_step_index(self, tool: str) -> int:
        """Index of the final step that belongs to ``tool`` (-1 if none)."""
        for i in range(len(self.steps) - 1, -1, -1):
            if self.steps[i].tool == tool:
                return i
        return -1
