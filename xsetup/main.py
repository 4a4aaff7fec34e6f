"""
xsetup — CLI entrypoint.

Usage:
    xsetup --help
    xsetup run --profile full --set-zsh-default
    xsetup plan --profile extra --manager mise
    python -m xsetup.main profiles list
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from xsetup import __version__
from xsetup.core.errors import ProvisionError
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import Profile
from xsetup.core.observability.logging_config import resolve_level, setup_logging
from xsetup.core.services.provision.managers import MANAGERS


@click.group()
@click.version_option(version=__version__, prog_name="xsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to xsetup.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """xsetup — provision an Ubuntu development machine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(
            debug=debug,
            verbose=verbose,
            quiet=quiet,
            env_level=os.environ.get("XSETUP_LOG_LEVEL"),
        ),
        log_file=os.environ.get("XSETUP_LOG_FILE"),
        log_file_level=os.environ.get("XSETUP_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _fail(error: ProvisionError) -> None:
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(error.exit_code)


def _load_config(ctx: click.Context, identity: Identity):
    """Load the config; the per-user file is the target identity's, not root's."""
    from xsetup.core.config.loader import load_config

    path: Path | None = ctx.obj.get("config_path")
    if path is not None:
        return load_config(path, explicit=True)
    return load_config(home=identity.home)


_PROFILE_CHOICE = click.Choice(Profile.names(), case_sensitive=False)
_MANAGER_CHOICE = click.Choice(list(MANAGERS), case_sensitive=False)


@cli.command()
@click.option("--profile", type=_PROFILE_CHOICE, default=None,
              help="Tool profile (default: from config, else mini).")
@click.option("--chezmoi", "chezmoi_repo", metavar="REPO_URL", default=None,
              help="Apply dotfiles from this repository with chezmoi.")
@click.option("--set-zsh-default", is_flag=True, help="Make zsh the login shell.")
@click.option("--manager", type=_MANAGER_CHOICE, default=None,
              help="Tool version manager (default: from config, else asdf).")
@click.pass_context
def run(
    ctx: click.Context,
    profile: str | None,
    chezmoi_repo: str | None,
    set_zsh_default: bool,
    manager: str | None,
) -> None:
    """Provision this machine for the invoking user."""
    from xsetup.core.services.provision import ProvisionOptions, provision
    from xsetup.core.services.provision.detection.identity import resolve_identity

    quiet = ctx.obj.get("quiet", False)

    def _progress(kind: str, message: str) -> None:
        if kind == "step" and not quiet:
            click.secho(f"››› {message}", fg="cyan")
        elif kind == "ok" and not quiet:
            click.secho(f"✅ {message}", fg="green")
        elif kind == "info" and not quiet:
            click.echo(f"   {message}")

    try:
        identity = resolve_identity()
        config = _load_config(ctx, identity)
        options = ProvisionOptions(
            profile=profile,
            manager=manager,
            chezmoi=chezmoi_repo,
            set_zsh_default=set_zsh_default,
        )
        report = provision(options, config, identity=identity, progress=_progress)
    except ProvisionError as e:
        _fail(e)
        return

    click.secho("✅ Your Ubuntu system setup is complete!", fg="green", bold=True)
    if not quiet:
        click.echo(
            f"   {len(report.tools)} tools via {report.manager} for {report.user} "
            f"({report.duration_ms / 1000:.0f}s). Open a new shell to pick them up."
        )


@cli.command()
@click.option("--profile", type=_PROFILE_CHOICE, default=None,
              help="Tool profile (default: from config, else mini).")
@click.option("--manager", type=_MANAGER_CHOICE, default=None,
              help="Tool version manager (default: from config, else asdf).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, profile: str | None, manager: str | None, as_json: bool) -> None:
    """Show what a run would install, without touching the host."""
    from xsetup.core.services.provision import (
        build_profile_task,
        get_manager,
        resolve_apt_packages,
        resolve_profile,
    )
    from xsetup.core.services.provision.detection.identity import resolve_identity

    try:
        identity = resolve_identity()
        config = _load_config(ctx, identity)
        selected = Profile.parse(profile or config.profile)
        tool_manager = get_manager(manager or config.manager.name, config.manager)
        task = build_profile_task(tool_manager, identity, selected)
    except ProvisionError as e:
        _fail(e)
        return

    tools = [spec.name for spec in resolve_profile(selected)]
    apt_extras = resolve_apt_packages(selected)

    if as_json:
        click.echo(json.dumps({
            "profile": selected.value,
            "manager": tool_manager.name,
            "manager_version": tool_manager.version,
            "user": identity.name,
            "tools": tools,
            "apt_packages": apt_extras,
            "task": task.model_dump(mode="json"),
        }, indent=2))
        return

    click.secho(
        f"\n📋 Profile {selected.value} via {tool_manager.name} {tool_manager.version} "
        f"for {identity.name}",
        fg="cyan", bold=True,
    )
    click.echo(f"   Tools ({len(tools)}): {', '.join(tools)}")
    click.echo(f"   APT extras: {', '.join(apt_extras) or '(none)'}")

    click.echo()
    click.secho("   Environment:", fg="white", bold=True)
    for key, value in task.env.items():
        click.echo(f"     {key}={value}")

    click.echo()
    click.secho(f"   Steps ({len(task.steps)}):", fg="white", bold=True)
    for i, step in enumerate(task.steps, start=1):
        guard = ""
        if step.skip_if:
            guard = f"  [skip if '{' '.join(step.skip_if.argv)}' lists {step.skip_if.line}]"
        click.echo(f"     {i:>2}. {step.label}{guard}")
        click.secho(f"         $ {' '.join(step.argv)}", dim=True)
    click.echo()


# ── Sub-command groups ─────────────────────────────────────────

from xsetup.ui.cli.history import history  # noqa: E402
from xsetup.ui.cli.profiles import profiles  # noqa: E402

cli.add_command(profiles)
cli.add_command(history)


if __name__ == "__main__":
    cli()
