"""
Tool managers — interchangeable implementations of ``ToolManager``.
"""

from __future__ import annotations

from xsetup.core.errors import ConfigError
from xsetup.core.models.config import ManagerSettings
from xsetup.core.services.provision.managers.asdf import AsdfManager
from xsetup.core.services.provision.managers.base import ToolManager
from xsetup.core.services.provision.managers.mise import MiseManager

MANAGERS: dict[str, type[ToolManager]] = {
    "asdf": AsdfManager,
    "mise": MiseManager,
}


def get_manager(name: str, settings: ManagerSettings | None = None) -> ToolManager:
    """Instantiate a manager by name at its configured pinned version.

    Raises:
        ConfigError: For an unknown manager name.
    """
    settings = settings or ManagerSettings()
    cls = MANAGERS.get(name)
    if cls is None:
        raise ConfigError(f"Unknown tool manager '{name}'. Valid: {', '.join(MANAGERS)}")
    return cls(settings.pinned_version(name), checksums=settings.checksums)


__all__ = ["AsdfManager", "MiseManager", "ToolManager", "MANAGERS", "get_manager"]
