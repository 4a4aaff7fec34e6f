"""
Shared test fixtures and configuration.

``FakeRunner`` stands in for the host: it records every command with the
identity it ran as, answers the handful of read-only probes a run makes,
and performs file operations directly under ``tmp_path``.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from xsetup.core.models.config import SetupConfig
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import Profile
from xsetup.core.services.provision.execution.download import ReleaseAsset
from xsetup.core.services.provision.execution.subprocess_runner import CommandResult, CommandRunner
from xsetup.core.services.provision.managers import get_manager
from xsetup.core.services.provision.orchestration.context import HostPaths, StageContext

UBUNTU_NOBLE = """\
PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04.1 LTS (Noble Numbat)"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
UBUNTU_CODENAME=noble
"""

ORIGINAL_SOURCES_LIST = "# Ubuntu sources have moved to ubuntu.sources\n"

ORIGINAL_UBUNTU_SOURCES = """\
Types: deb
URIs: http://archive.ubuntu.com/ubuntu/
Suites: noble noble-updates noble-backports
Components: main restricted universe multiverse
Signed-By: /usr/share/keyrings/ubuntu-archive-keyring.gpg
"""

MANAGER_VERSIONS = {"asdf": "0.18.0", "mise": "2025.9.10"}


@dataclass
class Call:
    """One recorded command."""

    actor: str                       # "root" or the user name
    argv: list[str]
    env: dict[str, str] = field(default_factory=dict)

    @property
    def line(self) -> str:
        return shlex.join(self.argv)


Handler = Callable[[list[str], dict[str, str]], CommandResult]


class FakeRunner(CommandRunner):
    """Recording host double.

    Args:
        root: Pretend the process is root.
        user: Name the process runs as when not root.
        resolvable: Commands ``command -v`` finds in any environment.
        which: ``shutil.which`` answers for this process.
    """

    def __init__(
        self,
        *,
        root: bool = False,
        user: str = "alice",
        resolvable: set[str] | None = None,
        which: dict[str, str] | None = None,
    ):
        self.root = root
        self.user = user
        self.calls: list[Call] = []
        self.file_ops: list[tuple[str, Path]] = []
        self.resolvable = set(
            resolvable if resolvable is not None
            else {"asdf", "mise", "python3", "node", "npm", "chezmoi", "git"}
        )
        self.which_map = dict(
            which if which is not None else {"sudo": "/usr/bin/sudo", "zsh": "/usr/bin/zsh"}
        )
        self.plugins: list[str] = []
        self.fail_on: list[list[str]] = []
        self.handlers: list[tuple[list[str], Handler]] = []

    # ── CommandRunner hooks ────────────────────────────────────

    @property
    def is_root(self) -> bool:
        return self.root

    def acting_as(self, identity: Identity) -> bool:
        return not self.root and identity.name == self.user

    def _writes_directly(self, owner: Identity | None) -> bool:
        return True

    def which(self, name: str) -> str | None:
        return self.which_map.get(name)

    def _execute(self, argv, *, env, input, cwd, timeout, capture) -> CommandResult:
        actor, inner, bindings = self._unwrap(argv)
        if env:
            bindings = {**env, **bindings}
        self.calls.append(Call(actor=actor, argv=inner, env=bindings))
        return self._respond(inner, bindings)

    # ── File operations (recorded, then done for real) ─────────

    def write_file(self, path, content, *, owner=None, append=False):
        self.file_ops.append(("append" if append else "write", path))
        super().write_file(path, content, owner=owner, append=append)

    def copy_file(self, src, dst, *, owner=None):
        self.file_ops.append(("copy", dst))
        super().copy_file(src, dst, owner=owner)

    def remove_tree(self, path, *, owner=None):
        self.file_ops.append(("remove", path))
        super().remove_tree(path, owner=owner)

    def install_executable(self, src, dest, *, owner=None):
        self.file_ops.append(("install", dest))
        super().install_executable(src, dest, owner=owner)

    def symlink(self, target, link, *, owner=None):
        self.file_ops.append(("symlink", link))
        super().symlink(target, link, owner=owner)

    # ── Helpers for assertions ─────────────────────────────────

    def commands(self, actor: str | None = None) -> list[list[str]]:
        return [c.argv for c in self.calls if actor is None or c.actor == actor]

    def lines(self, actor: str | None = None) -> list[str]:
        return [shlex.join(argv) for argv in self.commands(actor)]

    def ran(self, *prefix: str) -> bool:
        return any(argv[: len(prefix)] == list(prefix) for argv in self.commands())

    # ── Internals ──────────────────────────────────────────────

    def _unwrap(self, argv: list[str]) -> tuple[str, list[str], dict[str, str]]:
        me = "root" if self.root else self.user
        if argv[:1] == ["runuser"]:
            actor, rest = argv[2], argv[4:]
        elif argv[:2] == ["sudo", "-H"]:
            actor, rest = argv[3], argv[4:]
        elif argv[:1] == ["sudo"]:
            actor, rest = "root", argv[1:]
        else:
            return me, list(argv), {}

        bindings: dict[str, str] = {}
        if rest[:1] == ["env"]:
            rest = rest[1:]
            while rest and "=" in rest[0] and not rest[0].startswith("-"):
                key, _, value = rest.pop(0).partition("=")
                bindings[key] = value
        return actor, rest, bindings

    def _respond(self, argv: list[str], env: dict[str, str]) -> CommandResult:
        for prefix, handler in self.handlers:
            if argv[: len(prefix)] == prefix:
                return handler(argv, env)
        for prefix in self.fail_on:
            if argv[: len(prefix)] == prefix:
                return CommandResult(argv=argv, returncode=1, stderr=f"{argv[0]}: simulated failure\n")

        if argv[:2] == ["sh", "-c"] and argv[2].startswith("command -v "):
            name = shlex.split(argv[2])[2]
            if name in self.resolvable:
                return CommandResult(argv=argv, returncode=0, stdout=f"/fake/bin/{name}\n")
            return CommandResult(argv=argv, returncode=1)

        if argv[1:] == ["--version"]:
            binary = Path(argv[0])
            if not binary.is_file():
                return CommandResult(argv=argv, returncode=127, stderr="not found\n")
            version = MANAGER_VERSIONS.get(binary.name, "0.0.0")
            return CommandResult(argv=argv, returncode=0, stdout=f"{binary.name} v{version}\n")

        if argv[:3] == ["asdf", "plugin", "list"]:
            return CommandResult(argv=argv, returncode=0, stdout="".join(f"{p}\n" for p in self.plugins))
        if argv[:3] == ["asdf", "plugin", "add"]:
            self.plugins.append(argv[3])

        if argv[:2] == ["git", "clone"]:
            target = Path(argv[-1])
            (target / ".git").mkdir(parents=True)
            (target / "init.lua").write_text("-- template\n")

        return CommandResult(argv=argv, returncode=0)


class FakeFetcher:
    """Release fetcher double: writes a placeholder binary, counts calls."""

    def __init__(self):
        self.assets: list[ReleaseAsset] = []

    def __call__(self, asset: ReleaseAsset, work_dir: Path) -> Path:
        self.assets.append(asset)
        binary = work_dir / Path(asset.member).name
        binary.write_text("#!/bin/sh\necho fake\n")
        return binary


# ── Fixtures ───────────────────────────────────────────────────


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sysroot(tmp_path: Path) -> Path:
    """A fake system root with an untouched Ubuntu 24.04 APT setup."""
    root = tmp_path / "sysroot"
    (root / "etc" / "apt" / "sources.list.d").mkdir(parents=True)
    (root / "etc" / "os-release").write_text(UBUNTU_NOBLE)
    (root / "etc" / "apt" / "sources.list").write_text(ORIGINAL_SOURCES_LIST)
    (root / "etc" / "apt" / "sources.list.d" / "ubuntu.sources").write_text(ORIGINAL_UBUNTU_SOURCES)
    (root / "usr" / "bin").mkdir(parents=True)
    (root / "usr" / "bin" / "fdfind").write_text("#!/bin/sh\n")
    (root / "var" / "lib" / "apt" / "lists").mkdir(parents=True)
    (root / "var" / "lib" / "apt" / "lists" / "lock").write_text("")
    return root


@pytest.fixture
def paths(sysroot: Path) -> HostPaths:
    return HostPaths(root=sysroot)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def identity(home: Path) -> Identity:
    return Identity(name="alice", home=home, uid=1000, gid=1000, shell="/bin/bash")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def root_runner() -> FakeRunner:
    return FakeRunner(root=True)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_ctx(runner: FakeRunner, identity: Identity, paths: HostPaths, fetcher: FakeFetcher):
    """Build a StageContext; keyword arguments override the defaults."""

    def _make(
        *,
        manager: str = "asdf",
        profile: Profile = Profile.MINI,
        config: SetupConfig | None = None,
        **overrides,
    ) -> StageContext:
        config = config or SetupConfig()
        values = dict(
            runner=runner,
            identity=identity,
            arch="x86_64",
            codename="noble",
            profile=profile,
            manager=get_manager(manager, config.manager),
            config=config,
            paths=paths,
            fetcher=fetcher,
        )
        values.update(overrides)
        return StageContext(**values)

    return _make
