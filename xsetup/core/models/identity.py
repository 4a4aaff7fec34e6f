"""
Identity — the non-privileged user a run acts for.

Resolved once at start from the user database and never changed.
Anything written under ``home`` must end up owned by this user.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """A (user, home directory) pair plus the account fields we read."""

    model_config = ConfigDict(frozen=True)

    name: str
    home: Path
    uid: int = -1
    gid: int = -1
    shell: str = ""

    @property
    def is_root(self) -> bool:
        return self.uid == 0 or self.name == "root"

    def home_path(self, *parts: str) -> Path:
        """Path under the identity's home directory."""
        return self.home.joinpath(*parts)

    def __str__(self) -> str:
        return self.name
