"""
asdf manager — the single-binary asdf (v0.16 and later).

Tools are installed per plugin: ``plugin add`` (skipped when already
listed), ``install`` for every requested version, then ``set -u`` so
``~/.tool-versions`` prefers the first version and falls back to the
rest.
"""

from __future__ import annotations

from pathlib import Path

from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import ToolSpec
from xsetup.core.models.task import Probe, Step
from xsetup.core.services.provision.data.constants import SYSTEM_PATH
from xsetup.core.services.provision.execution.rc_file import RcStanza
from xsetup.core.services.provision.managers.base import LEGACY_RC_PATTERNS, ToolManager

RELEASES = "https://github.com/asdf-vm/asdf/releases/download"


class AsdfManager(ToolManager):
    """asdf, installed as a pinned release binary under ``~/.asdf/bin``."""

    asset_arches = {"x86_64": "amd64", "arm64": "arm64"}

    @property
    def name(self) -> str:
        return "asdf"

    def data_dir(self, identity: Identity) -> Path:
        return identity.home_path(".asdf")

    def binary_path(self, identity: Identity) -> Path:
        return self.data_dir(identity) / "bin" / "asdf"

    def conflicting_paths(self, identity: Identity) -> list[Path]:
        candidates = [
            identity.home_path(".local", "bin", "mise"),
            identity.home_path(".local", "share", "mise"),
        ]
        # A pre-0.16 git checkout of asdf (bash scripts, not the binary)
        if (self.data_dir(identity) / "asdf.sh").exists():
            candidates.append(self.data_dir(identity))
        return [p for p in candidates if p.exists() or p.is_symlink()]

    def asset_name(self, asset_arch: str) -> str:
        return f"asdf-v{self.version}-linux-{asset_arch}.tar.gz"

    def asset_url(self, filename: str) -> str:
        return f"{RELEASES}/v{self.version}/{filename}"

    @property
    def asset_member(self) -> str:
        return "asdf"

    def environment(self, identity: Identity) -> dict[str, str]:
        data = self.data_dir(identity)
        return {
            "ASDF_DATA_DIR": str(data),
            "PATH": f"{data}/bin:{data}/shims:{SYSTEM_PATH}",
        }

    def rc_stanza(self, identity: Identity, shell: str = "zsh") -> RcStanza:
        return RcStanza(
            name="asdf",
            lines=(
                f'export ASDF_DATA_DIR="{self.data_dir(identity)}"',
                'export PATH="$ASDF_DATA_DIR/bin:$ASDF_DATA_DIR/shims:$PATH"',
            ),
            stale_patterns=LEGACY_RC_PATTERNS,
        )

    def tool_steps(self, spec: ToolSpec) -> list[Step]:
        add = ["asdf", "plugin", "add", spec.name]
        if spec.source:
            add.append(spec.source)
        steps = [
            Step(
                label=f"Add asdf plugin {spec.name}",
                argv=add,
                tool=spec.name,
                skip_if=Probe(argv=["asdf", "plugin", "list"], line=spec.name),
                timeout=300,
            ),
        ]
        for version in spec.version.versions:
            steps.append(Step(
                label=f"Install {spec.name} {version}",
                argv=["asdf", "install", spec.name, version],
                tool=spec.name,
            ))
        steps.append(Step(
            label=f"Set {spec.name} {spec.version}",
            argv=["asdf", "set", "-u", spec.name, *spec.version.versions],
            tool=spec.name,
            timeout=120,
        ))
        return steps

    def activation_step(self, runtime: str | None = None) -> Step:
        argv = ["asdf", "reshim"] + ([runtime] if runtime else [])
        label = f"Reshim {runtime}" if runtime else "Reshim all tools"
        return Step(label=label, argv=argv, timeout=300)
