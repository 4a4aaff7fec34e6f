"""
Profile and ToolSpec — what a run installs.

A Profile is one of three named tiers with a strict containment
order (``mini ⊂ full ⊂ extra``).  A ToolSpec is one installable unit
inside a profile's table.  Both are immutable; the tables that hold
them live in ``services/provision/data/profiles.py``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from xsetup.core.errors import ConfigError


class Profile(str, Enum):
    """Installation tier. Each tier includes every lower one."""

    MINI = "mini"
    FULL = "full"
    EXTRA = "extra"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    def includes(self, other: Profile) -> bool:
        """Whether this profile contains everything ``other`` does."""
        return self.rank >= other.rank

    def tiers(self) -> list[Profile]:
        """Every profile up to and including this one, lowest first."""
        return _ORDER[: self.rank + 1]

    @classmethod
    def parse(cls, value: str | Profile) -> Profile:
        """Turn user input into a Profile.

        Raises:
            ConfigError: If ``value`` is not a known profile name.
        """
        if isinstance(value, Profile):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in _ORDER)
            raise ConfigError(f"Invalid profile '{value}'. Valid profiles: {valid}") from None

    @classmethod
    def names(cls) -> list[str]:
        return [p.value for p in _ORDER]


_ORDER: list[Profile] = [Profile.MINI, Profile.FULL, Profile.EXTRA]


class VersionConstraint(BaseModel):
    """Which version(s) of a tool to install.

    ``version`` is preferred; ``fallback`` is a second version that is
    installed alongside and listed after it, so the manager resolves
    to it only when the preferred one cannot serve a request.
    """

    model_config = ConfigDict(frozen=True)

    version: str = "latest"
    fallback: str | None = None

    @property
    def versions(self) -> tuple[str, ...]:
        if self.fallback:
            return (self.version, self.fallback)
        return (self.version,)

    @property
    def is_latest(self) -> bool:
        return self.version == "latest" and self.fallback is None

    def __str__(self) -> str:
        return " + ".join(self.versions)


class ToolSpec(BaseModel):
    """One installable unit of a profile.

    Attributes:
        name: Tool id as the version manager knows it.
        version: Version constraint (``latest`` unless pinned).
        source: Plugin repository URL overriding the manager's default
            lookup (asdf plugins published outside the shortname index).
        requires: Another tool whose runtime must already be on PATH
            when this one builds.  Such tools install in a second phase.
        installer: ``manager`` for the version manager itself, ``npm``
            for a global package installed with the runtime's own
            package manager.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: VersionConstraint = VersionConstraint()
    source: str | None = None
    requires: str | None = None
    installer: Literal["manager", "npm"] = "manager"

    @property
    def deferred(self) -> bool:
        """Builds against another tool's runtime (second phase)."""
        return self.installer == "manager" and self.requires is not None

    @property
    def runtime_package(self) -> bool:
        return self.installer != "manager"
