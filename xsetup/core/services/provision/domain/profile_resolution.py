"""
L1 Domain — Profile resolution (pure).

No I/O, no environment reads.  Same input, same output, every time.
"""

from __future__ import annotations

from xsetup.core.models.profile import Profile, ToolSpec
from xsetup.core.services.provision.data.apt import PROFILE_APT_PACKAGES
from xsetup.core.services.provision.data.profiles import PROFILE_TOOLS


def resolve_profile(profile: Profile | str) -> list[ToolSpec]:
    """Expand a profile into its ordered, de-duplicated ToolSpec sequence.

    Tables are concatenated lowest tier first, so a higher tier only
    ever appends.  When a name repeats, the first occurrence wins.

    Raises:
        ConfigError: If ``profile`` is not a known profile name.
    """
    profile = Profile.parse(profile)
    resolved: list[ToolSpec] = []
    seen: set[str] = set()
    for tier in profile.tiers():
        for spec in PROFILE_TOOLS[tier]:
            if spec.name in seen:
                continue
            seen.add(spec.name)
            resolved.append(spec)
    return resolved


def resolve_apt_packages(profile: Profile | str) -> list[str]:
    """Cumulative extra APT packages for a profile, in table order."""
    profile = Profile.parse(profile)
    packages: list[str] = []
    for tier in profile.tiers():
        for name in PROFILE_APT_PACKAGES[tier]:
            if name not in packages:
                packages.append(name)
    return packages


def install_phases(specs: list[ToolSpec]) -> tuple[list[ToolSpec], list[ToolSpec], list[ToolSpec]]:
    """Split a resolved sequence into its three install phases.

    Returns:
        ``(direct, deferred, runtime_packages)``, each in resolver order:
          - direct: installed first through the version manager
          - deferred: need another tool's runtime, installed after a reshim
          - runtime_packages: installed with a runtime's own package manager
    """
    direct = [s for s in specs if not s.deferred and not s.runtime_package]
    deferred = [s for s in specs if s.deferred]
    runtime = [s for s in specs if s.runtime_package]
    return direct, deferred, runtime


def unmet_requirements(specs: list[ToolSpec]) -> dict[str, str]:
    """Tools whose ``requires`` names a tool missing from ``specs``.

    Returns:
        ``{tool: missing_requirement}``; empty when the sequence is
        self-contained.
    """
    names = {s.name for s in specs}
    return {s.name: s.requires for s in specs if s.requires and s.requires not in names}
