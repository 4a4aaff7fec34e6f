"""
L5 Orchestration — What every stage is handed.

``HostPaths`` resolves the fixed system locations against a root
directory so tests can point a whole run at ``tmp_path``.
``StageContext`` bundles the values resolved once during pre-flight
(identity, architecture tag, release codename, manager) and threads
them through the stages unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from xsetup.core.models.config import SetupConfig
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import Profile
from xsetup.core.services.provision.data import constants as C
from xsetup.core.services.provision.execution.download import Fetcher, fetch_release_binary
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner
from xsetup.core.services.provision.managers.base import ToolManager

# (kind, message) where kind is "step" (about to act), "ok" (done) or "info"
Progress = Callable[[str, str], None]


def _silent(kind: str, message: str) -> None:
    pass


@dataclass(frozen=True)
class HostPaths:
    """System paths under a root (``/`` outside of tests)."""

    root: Path = Path("/")

    def _at(self, relative: str) -> Path:
        return self.root / relative

    @property
    def os_release(self) -> Path:
        return self._at(C.OS_RELEASE)

    @property
    def sources_list(self) -> Path:
        return self._at(C.APT_SOURCES_LIST)

    @property
    def sources_dir(self) -> Path:
        return self._at(C.APT_SOURCES_DIR)

    @property
    def default_sources(self) -> Path:
        return self._at(C.APT_DEFAULT_SOURCES)

    @property
    def apt_lists(self) -> Path:
        return self._at(C.APT_LISTS_DIR)

    @property
    def fdfind(self) -> Path:
        return self._at(C.FDFIND_BIN)

    @property
    def fd_link(self) -> Path:
        return self._at(C.FD_LINK)

    @property
    def lock_file(self) -> Path:
        return self._at(C.LOCK_FILE)


@dataclass
class StageContext:
    """Everything a stage needs, resolved before the first mutation."""

    runner: CommandRunner
    identity: Identity
    arch: str
    codename: str
    profile: Profile
    manager: ToolManager
    config: SetupConfig = field(default_factory=SetupConfig)
    paths: HostPaths = field(default_factory=HostPaths)
    fetcher: Fetcher = fetch_release_binary
    progress: Progress = _silent

    def step(self, message: str) -> None:
        self.progress("step", message)

    def ok(self, message: str) -> None:
        self.progress("ok", message)
