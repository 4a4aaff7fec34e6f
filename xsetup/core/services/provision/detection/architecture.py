"""
L3 Detection — Machine architecture → repository architecture tag.

Called once per run; the tag is threaded through every stage that
needs it so two call sites can never disagree.
"""

from __future__ import annotations

import platform

from xsetup.core.errors import ConfigError
from xsetup.core.services.provision.data.constants import ARCH_MAP


def architecture_tag(machine: str) -> str:
    """Map a kernel machine name to its repository architecture tag.

    Raises:
        ConfigError: Naming the value, for any machine not in the table.
    """
    tag = ARCH_MAP.get(machine.strip())
    if tag is None:
        supported = ", ".join(sorted(set(ARCH_MAP)))
        raise ConfigError(f"Unsupported architecture: {machine} (supported: {supported})")
    return tag


def detect_architecture(machine: str | None = None) -> str:
    """Tag for this host (``platform.machine()`` unless given)."""
    return architecture_tag(machine if machine is not None else platform.machine())
