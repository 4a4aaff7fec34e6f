"""
SetupConfig — the optional ``xsetup.yml`` file.

Every field has a default, so an absent file means "run with the
defaults".  CLI flags override whatever is loaded here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from xsetup.core.models.profile import Profile

MIRROR_PRESETS = ("tuna", "official")


class ManagerSettings(BaseModel):
    """Which version manager to install and at what pinned release."""

    name: Literal["asdf", "mise"] = "asdf"
    asdf_version: str = "0.18.0"
    mise_version: str = "2025.9.10"
    checksums: dict[str, str] = Field(default_factory=dict)   # asset name -> "sha256:<hex>"

    @field_validator("checksums")
    @classmethod
    def _checksum_format(cls, value: dict[str, str]) -> dict[str, str]:
        for asset, digest in value.items():
            algo, _, hexdigest = digest.partition(":")
            if not algo or not hexdigest:
                raise ValueError(f"checksum for {asset} must look like 'sha256:<hex>'")
        return value

    def pinned_version(self, manager: str | None = None) -> str:
        name = manager or self.name
        return self.mise_version if name == "mise" else self.asdf_version


class AptSettings(BaseModel):
    """Package repository settings for the base system stage."""

    mirror: str = "tuna"

    @field_validator("mirror")
    @classmethod
    def _known_mirror(cls, value: str) -> str:
        value = value.strip()
        if value in MIRROR_PRESETS:
            return value
        if value.startswith(("http://", "https://")):
            return value.rstrip("/")
        raise ValueError(
            f"mirror must be one of {', '.join(MIRROR_PRESETS)} or an http(s) URL, got '{value}'"
        )


class SetupConfig(BaseModel):
    """Root configuration model."""

    version: int = 1
    profile: Profile = Profile.MINI
    manager: ManagerSettings = Field(default_factory=ManagerSettings)
    apt: AptSettings = Field(default_factory=AptSettings)
    editor_template: str = "https://github.com/AstroNvim/template"
    rc_file: str = ".zshrc"
    history: bool = True

    @field_validator("rc_file")
    @classmethod
    def _relative_rc_file(cls, value: str) -> str:
        if value.startswith("/") or ".." in value.split("/"):
            raise ValueError("rc_file must be a path relative to the user's home")
        return value
