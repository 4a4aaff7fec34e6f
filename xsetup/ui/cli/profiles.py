"""
CLI commands for profiles — what each tier installs.

Usage::

    xsetup profiles list
    xsetup profiles show full --json
"""

from __future__ import annotations

import json

import click

from xsetup.core.models.profile import Profile


@click.group()
def profiles() -> None:
    """Profiles — the mini / full / extra tool tiers."""


def _phase(spec) -> str:
    if spec.runtime_package:
        return f"{spec.installer} on {spec.requires}"
    if spec.deferred:
        return f"after {spec.requires}"
    return "direct"


@profiles.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def profiles_list(as_json: bool) -> None:
    """List profiles with their cumulative tool lists."""
    from xsetup.core.services.provision import resolve_apt_packages, resolve_profile

    rows = [
        {
            "name": p.value,
            "tools": [s.name for s in resolve_profile(p)],
            "apt_packages": resolve_apt_packages(p),
        }
        for p in Profile
    ]

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    for row in rows:
        click.secho(f"{row['name']:<6}", fg="cyan", bold=True, nl=False)
        click.echo(f" {len(row['tools']):>2} tools  {', '.join(row['tools'])}")
        if row["apt_packages"]:
            click.echo(f"{'':<6}  + apt: {', '.join(row['apt_packages'])}")


@profiles.command("show")
@click.argument("name", type=click.Choice(Profile.names(), case_sensitive=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def profiles_show(name: str, as_json: bool) -> None:
    """Show every tool in a profile, in install order."""
    from xsetup.core.services.provision import resolve_apt_packages, resolve_profile

    profile = Profile.parse(name)
    specs = resolve_profile(profile)

    if as_json:
        click.echo(json.dumps({
            "name": profile.value,
            "tools": [s.model_dump(mode="json") for s in specs],
            "apt_packages": resolve_apt_packages(profile),
        }, indent=2))
        return

    click.secho(f"\n📦 {profile.value} ({len(specs)} tools)", fg="cyan", bold=True)
    for spec in specs:
        source = f"  ← {spec.source}" if spec.source else ""
        click.echo(f"   • {spec.name:<12} {str(spec.version):<18} {_phase(spec)}{source}")
    extras = resolve_apt_packages(profile)
    if extras:
        click.echo(f"\n   APT extras: {', '.join(extras)}")
    click.echo()
