"""
L3 Detection — /etc/os-release parsing and distribution check.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path

from xsetup.core.errors import ConfigError

SUPPORTED_DISTRIBUTION = "ubuntu"


@dataclass(frozen=True)
class OsRelease:
    """The os-release fields a run cares about."""

    id: str
    version_codename: str = ""
    version_id: str = ""
    pretty_name: str = ""
    fields: dict[str, str] = field(default_factory=dict, compare=False)


def parse_os_release(text: str) -> OsRelease:
    """Parse os-release ``KEY=value`` lines (shell quoting allowed)."""
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return OsRelease(
        id=values.get("ID", "").lower(),
        version_codename=values.get("VERSION_CODENAME", "")
        or values.get("UBUNTU_CODENAME", ""),
        version_id=values.get("VERSION_ID", ""),
        pretty_name=values.get("PRETTY_NAME", ""),
        fields=values,
    )


def read_os_release(path: Path) -> OsRelease:
    """Read and validate the host release metadata.

    Raises:
        ConfigError: If the file is missing, the distribution is not
            Ubuntu, or no release codename is present.
    """
    if not path.is_file():
        raise ConfigError(f"Cannot determine Ubuntu version: {path} not found")
    try:
        release = parse_os_release(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if release.id != SUPPORTED_DISTRIBUTION:
        found = release.pretty_name or release.id or "unknown"
        raise ConfigError(f"This tool supports Ubuntu systems only (found: {found})")
    if not release.version_codename:
        raise ConfigError(f"No VERSION_CODENAME in {path}; cannot generate APT sources")
    return release
