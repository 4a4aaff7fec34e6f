"""
L5 Orchestration — Optional post-install actions.

Each action is gated by the profile or a flag, and each is a no-op when
its target is already in the desired state:

    editor template   full/extra only, skipped when the dir exists
    dotfiles          --chezmoi URL, delegated to ``chezmoi init --apply``
    login shell       --set-zsh-default, skipped when already zsh
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.models.profile import Profile
from xsetup.core.services.provision.data.constants import EDITOR_CONFIG_DIR
from xsetup.core.services.provision.detection.identity import lookup_login_shell
from xsetup.core.services.provision.orchestration.context import StageContext

logger = logging.getLogger(__name__)


def clone_editor_template(ctx: StageContext) -> bool:
    """Seed the editor config from the template, once.

    Returns:
        True if the template was cloned.
    """
    target = ctx.identity.home_path(EDITOR_CONFIG_DIR)
    if target.exists():
        logger.info("Editor config %s already exists, leaving it alone", target)
        return False

    url = ctx.config.editor_template
    ctx.step(f"Cloning editor template {url}")
    ctx.runner.run_as(ctx.identity, ["git", "clone", "--depth", "1", url, str(target)])
    ctx.runner.remove_tree(target / ".git", owner=ctx.identity)
    ctx.ok(f"Editor config seeded at {target}")
    return True


def apply_dotfiles(ctx: StageContext, repo_url: str) -> None:
    """Hand the dotfiles repository to chezmoi, as the identity."""
    env = ctx.manager.environment(ctx.identity)
    if ctx.runner.resolve_as(ctx.identity, "chezmoi", env=env) is None:
        raise HostEnvironmentError(
            f"chezmoi is not on PATH for {ctx.identity.name} (PATH={env.get('PATH', '')})"
        )
    ctx.step(f"Applying dotfiles from {repo_url}")
    ctx.runner.run_as(ctx.identity, ["chezmoi", "init", "--apply", repo_url], env=env)
    ctx.ok("Dotfiles applied")


def set_login_shell(
    ctx: StageContext,
    shell: str = "zsh",
    *,
    current_shell: Callable[[str], str] = lookup_login_shell,
) -> bool:
    """Make ``shell`` the identity's login shell if it is not already.

    Returns:
        True if the account database was changed.
    """
    path = ctx.runner.which(shell)
    if path is None:
        raise HostEnvironmentError(f"{shell} is not installed; cannot make it the login shell")

    current = current_shell(ctx.identity.name)
    if current == path:
        logger.info("Login shell for %s is already %s", ctx.identity.name, path)
        return False

    ctx.step(f"Changing login shell for {ctx.identity.name}: {current or '(none)'} → {path}")
    ctx.runner.run_as_root(["chsh", "-s", path, ctx.identity.name])
    ctx.ok(f"Login shell set to {path}")
    return True


def run_post_install(
    ctx: StageContext,
    *,
    chezmoi: str | None = None,
    set_zsh_default: bool = False,
    current_shell: Callable[[str], str] = lookup_login_shell,
) -> list[str]:
    """Run whichever actions the profile and flags ask for.

    Returns:
        Names of the actions that changed something.
    """
    changed: list[str] = []
    if ctx.profile.includes(Profile.FULL) and clone_editor_template(ctx):
        changed.append("editor-template")
    if chezmoi:
        apply_dotfiles(ctx, chezmoi)
        changed.append("dotfiles")
    if set_zsh_default and set_login_shell(ctx, current_shell=current_shell):
        changed.append("login-shell")
    return changed
