"""
Tool manager base — the capability every version manager provides.

The orchestration core only talks to a manager through this interface:
where its binary lives, which release asset to fetch, what to put in
the shell rc file, and how to turn ToolSpecs into task steps.  Managers
are pure: they build data, they never run anything.

To add a manager:
    1. Subclass ToolManager
    2. Implement the abstract members
    3. Register it in ``managers/__init__.py``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from xsetup.core.errors import ConfigError
from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import ToolSpec
from xsetup.core.models.task import Step, Task
from xsetup.core.services.provision.data.profiles import RUNTIME_INSTALLERS
from xsetup.core.services.provision.domain.profile_resolution import install_phases
from xsetup.core.services.provision.execution.download import ReleaseAsset
from xsetup.core.services.provision.execution.rc_file import RcStanza

# Command each runtime's shims provide once the manager has installed it.
RUNTIME_COMMANDS: dict[str, str] = {
    "python": "python3",
    "nodejs": "node",
    "rust": "cargo",
    "golang": "go",
}

# Lines earlier asdf/mise setups leave in rc files.
LEGACY_RC_PATTERNS: tuple[str, ...] = (
    r"asdf\.sh",
    r"ASDF_DATA_DIR",
    r"asdf.*setup",
    r"mise activate",
)


class ToolManager(ABC):
    """Abstract base for a tool-version manager (asdf, mise)."""

    # uname-derived repository tag → the manager's release asset arch
    asset_arches: dict[str, str] = {}

    def __init__(self, version: str, *, checksums: dict[str, str] | None = None) -> None:
        self.version = version
        self.checksums = dict(checksums or {})

    # ── Identity ───────────────────────────────────────────────

    @property
    @abstractmethod
    def name(self) -> str:
        """Manager identifier (``asdf``, ``mise``)."""

    @abstractmethod
    def binary_path(self, identity: Identity) -> Path:
        """Where the manager binary must exist after installation."""

    @abstractmethod
    def data_dir(self, identity: Identity) -> Path:
        """Root of installed tools and shims."""

    @abstractmethod
    def conflicting_paths(self, identity: Identity) -> list[Path]:
        """Existing installations that must be removed before installing.

        Only paths that exist on disk are returned.
        """

    # ── Release ────────────────────────────────────────────────

    @abstractmethod
    def asset_name(self, asset_arch: str) -> str:
        """File name of the pinned release archive."""

    @abstractmethod
    def asset_url(self, filename: str) -> str:
        """Download URL for a release archive."""

    @property
    @abstractmethod
    def asset_member(self) -> str:
        """Path of the binary inside the archive."""

    def release_asset(self, arch: str) -> ReleaseAsset:
        """The pinned asset for an architecture tag.

        Raises:
            ConfigError: If the manager publishes nothing for ``arch``.
        """
        asset_arch = self.asset_arches.get(arch)
        if asset_arch is None:
            supported = ", ".join(sorted(self.asset_arches))
            raise ConfigError(
                f"{self.name} publishes no Linux release for architecture {arch} "
                f"(supported: {supported})"
            )
        filename = self.asset_name(asset_arch)
        return ReleaseAsset(
            url=self.asset_url(filename),
            member=self.asset_member,
            checksum=self.checksums.get(filename),
        )

    def version_matches(self, version_output: str) -> bool:
        """Whether ``<binary> --version`` output reports the pinned version."""
        return self.version in version_output

    # ── Environment ────────────────────────────────────────────

    @abstractmethod
    def environment(self, identity: Identity) -> dict[str, str]:
        """Bindings that make the manager and its shims resolvable."""

    @abstractmethod
    def rc_stanza(self, identity: Identity, shell: str = "zsh") -> RcStanza:
        """Shell lines that activate the manager in interactive shells."""

    # ── Steps ──────────────────────────────────────────────────

    @abstractmethod
    def tool_steps(self, spec: ToolSpec) -> list[Step]:
        """Install and activate one tool (all of its versions)."""

    @abstractmethod
    def activation_step(self, runtime: str | None = None) -> Step:
        """Regenerate shims so freshly installed binaries resolve."""

    def shim_check(self, command: str) -> list[str]:
        """Exits 0 only if the manager itself provides ``command``.

        A PATH lookup is not enough: the task PATH ends with the system
        directories, where Ubuntu ships its own ``python3``.
        """
        return [self.name, "which", command]

    def runtime_package_steps(self, spec: ToolSpec) -> list[Step]:
        """Install a package through its runtime's own package manager."""
        installer = RUNTIME_INSTALLERS[spec.installer]
        runtime = str(installer["runtime"])
        command = str(installer["command"])
        install = [str(part) for part in installer["install"]]  # type: ignore[union-attr]
        return [
            self.activation_step(runtime),
            Step(
                label=f"Install {spec.name} with {command}",
                argv=[*install, spec.name],
                tool=spec.name,
                requires=[command],
                checks=[self.shim_check(command)],
            ),
            self.activation_step(runtime).model_copy(update={"tool": spec.name}),
        ]

    def build_task(self, identity: Identity, specs: list[ToolSpec], *, name: str = "") -> Task:
        """Turn a resolved ToolSpec sequence into one ordered Task.

        Order: direct tools as resolved; then, if any tool builds
        against another tool's runtime, a shim refresh followed by
        those tools; then runtime-package installs.
        """
        direct, deferred, runtime = install_phases(specs)
        steps: list[Step] = []

        for spec in direct:
            steps.extend(self.tool_steps(spec))

        if deferred:
            steps.append(self.activation_step())
            for spec in deferred:
                tool_steps = self.tool_steps(spec)
                needed = RUNTIME_COMMANDS.get(spec.requires or "", spec.requires or "")
                tool_steps[0] = tool_steps[0].model_copy(
                    update={"checks": [*tool_steps[0].checks, self.shim_check(needed)]}
                )
                steps.extend(tool_steps)

        for spec in runtime:
            steps.extend(self.runtime_package_steps(spec))

        return Task(
            name=name or f"{self.name}-tools",
            env=self.environment(identity),
            steps=steps,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} version={self.version!r}>"
