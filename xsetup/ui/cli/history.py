"""
CLI commands for the run history ledger.

Usage::

    xsetup history list
    xsetup history list -n 5 --json
"""

from __future__ import annotations

import json
import sys

import click

from xsetup.core.errors import ProvisionError


@click.group()
def history() -> None:
    """History — past provisioning runs for this user."""


@history.command("list")
@click.option("--limit", "-n", default=20, show_default=True, help="Most recent N runs.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def history_list(limit: int, as_json: bool) -> None:
    """List recent runs, oldest first."""
    from xsetup.core.persistence.run_log import RunLog
    from xsetup.core.services.provision.detection.identity import resolve_identity

    try:
        identity = resolve_identity()
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(e.exit_code)

    records = RunLog.for_identity(identity).read_recent(limit)

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return

    if not records:
        click.echo(f"No runs recorded for {identity.name}.")
        return

    for record in records:
        color = "green" if record.status == "ok" else "red"
        click.echo(f"{record.timestamp[:19]}  ", nl=False)
        click.secho(f"{record.status:<6}", fg=color, nl=False)
        click.echo(
            f" {record.profile:<5} {record.manager:<4} {record.architecture:<7} "
            f"{len(record.tools):>2} tools  {record.duration_ms / 1000:>6.0f}s"
        )
        if record.error:
            click.echo(f"   └ {record.error}")
