"""
L1 Domain — APT source list rendering (pure).
"""

from __future__ import annotations

from xsetup.core.services.provision.data.apt import (
    BASE_SUITES,
    BOOTSTRAP_SUITES,
    COMPONENTS,
    MIRRORS,
)
from xsetup.core.services.provision.data.constants import PRIMARY_ARCHIVE_ARCHES


def mirror_base(arch: str, mirror: str = "tuna") -> str:
    """Archive URL for an architecture tag.

    ``mirror`` is a preset name (``tuna``, ``official``) or a custom
    URL, which is used as-is for every architecture.
    """
    if mirror not in MIRRORS:
        return mirror.rstrip("/")
    primary, ports = MIRRORS[mirror]
    return primary if arch in PRIMARY_ARCHIVE_ARCHES else ports


def render_sources_list(
    arch: str,
    codename: str,
    *,
    mirror: str = "tuna",
    suites: tuple[str, ...] = BASE_SUITES,
) -> str:
    """Render a one-line-style ``sources.list`` for ``codename``."""
    base = mirror_base(arch, mirror)
    lines = [f"deb {base}/ {codename}{suffix} {COMPONENTS}" for suffix in suites]
    return "\n".join(lines) + "\n"


def render_bootstrap_sources(arch: str, codename: str) -> str:
    """Sources used by the root bootstrap: official archive, no backports."""
    return render_sources_list(arch, codename, mirror="official", suites=BOOTSTRAP_SUITES)
