"""
L5 Orchestration — Reclaim package-manager disk space.

Unconditional, last stage of a successful run.
"""

from __future__ import annotations

from xsetup.core.services.provision.orchestration.base_system import apt_get
from xsetup.core.services.provision.orchestration.context import StageContext


def run_cleanup(ctx: StageContext) -> None:
    """Prune obsolete packages, the download cache and the index cache."""
    ctx.step("Cleaning up package caches")
    apt_get(ctx.runner, "autoremove", "-y")
    apt_get(ctx.runner, "clean")
    ctx.runner.run_as_root(["find", str(ctx.paths.apt_lists), "-mindepth", "1", "-delete"])
    ctx.ok("Package caches cleaned")
