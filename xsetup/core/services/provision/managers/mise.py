"""
mise manager — installed as a pinned release binary in ``~/.local/bin``.

``mise use --global`` both installs and activates, so one step per
tool is enough.  mise resolves tool names through its own registry;
asdf plugin URLs in ToolSpec.source do not apply here.
"""

from __future__ import annotations

from pathlib import Path

from xsetup.core.models.identity import Identity
from xsetup.core.models.profile import ToolSpec
from xsetup.core.models.task import Step
from xsetup.core.services.provision.data.constants import SYSTEM_PATH
from xsetup.core.services.provision.execution.rc_file import RcStanza
from xsetup.core.services.provision.managers.base import LEGACY_RC_PATTERNS, ToolManager

RELEASES = "https://github.com/jdx/mise/releases/download"


class MiseManager(ToolManager):
    """mise, replacing any asdf installation it finds."""

    asset_arches = {"x86_64": "x64", "arm64": "arm64", "armhf": "armv7"}

    @property
    def name(self) -> str:
        return "mise"

    def data_dir(self, identity: Identity) -> Path:
        return identity.home_path(".local", "share", "mise")

    def binary_path(self, identity: Identity) -> Path:
        return identity.home_path(".local", "bin", "mise")

    def conflicting_paths(self, identity: Identity) -> list[Path]:
        legacy = identity.home_path(".asdf")
        return [legacy] if legacy.exists() else []

    def asset_name(self, asset_arch: str) -> str:
        return f"mise-v{self.version}-linux-{asset_arch}.tar.gz"

    def asset_url(self, filename: str) -> str:
        return f"{RELEASES}/v{self.version}/{filename}"

    @property
    def asset_member(self) -> str:
        return "mise/bin/mise"

    def environment(self, identity: Identity) -> dict[str, str]:
        bin_dir = self.binary_path(identity).parent
        shims = self.data_dir(identity) / "shims"
        return {
            "MISE_YES": "1",
            "PATH": f"{bin_dir}:{shims}:{SYSTEM_PATH}",
        }

    def rc_stanza(self, identity: Identity, shell: str = "zsh") -> RcStanza:
        return RcStanza(
            name="mise",
            lines=(f'eval "$({self.binary_path(identity)} activate {shell})"',),
            stale_patterns=LEGACY_RC_PATTERNS,
        )

    def tool_steps(self, spec: ToolSpec) -> list[Step]:
        targets = [f"{spec.name}@{version}" for version in spec.version.versions]
        return [
            Step(
                label=f"Install {spec.name} {spec.version}",
                argv=["mise", "use", "--global", "--yes", *targets],
                tool=spec.name,
            ),
        ]

    def activation_step(self, runtime: str | None = None) -> Step:
        return Step(label="Reshim all tools", argv=["mise", "reshim"], timeout=300)
