"""
L0 Data — Tool tables per profile.

Each table holds only what its tier ADDS; the resolver concatenates
tables lowest tier first.  Order inside a table is the install order.

Special cases carried by the data rather than by code:
  - python installs two pinned versions, modern preferred
  - llvm builds with python's runtime on PATH → second phase
  - eza / fzf / zoxide use asdf plugins outside the shortname index
  - opencommit is an npm global on the nodejs runtime
"""

from __future__ import annotations

from xsetup.core.models.profile import Profile, ToolSpec, VersionConstraint

_PLUGIN_BASE = "https://github.com/pauloedurezende"

PYTHON_MODERN = "3.13.7"
PYTHON_LEGACY = "3.10.15"

_MINI: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="python",
        version=VersionConstraint(version=PYTHON_MODERN, fallback=PYTHON_LEGACY),
    ),
    ToolSpec(name="chezmoi"),
    ToolSpec(name="rust"),
    ToolSpec(name="eza", source=f"{_PLUGIN_BASE}/asdf-eza.git"),
    ToolSpec(name="neovim"),
    ToolSpec(name="uv"),
    ToolSpec(name="zellij"),
    ToolSpec(name="fzf", source=f"{_PLUGIN_BASE}/asdf-fzf.git"),
    ToolSpec(name="llvm", requires="python"),
)

_FULL: tuple[ToolSpec, ...] = (
    ToolSpec(name="zoxide", source=f"{_PLUGIN_BASE}/asdf-zoxide.git"),
    ToolSpec(name="lazygit"),
    ToolSpec(name="ctop"),
)

_EXTRA: tuple[ToolSpec, ...] = (
    ToolSpec(name="dust"),
    ToolSpec(name="nodejs"),
    ToolSpec(name="golang"),
    ToolSpec(name="opencommit", installer="npm", requires="nodejs"),
)

PROFILE_TOOLS: dict[Profile, tuple[ToolSpec, ...]] = {
    Profile.MINI: _MINI,
    Profile.FULL: _FULL,
    Profile.EXTRA: _EXTRA,
}

# Runtime package managers and the tool that provides each one.
RUNTIME_INSTALLERS: dict[str, dict[str, object]] = {
    "npm": {"command": "npm", "runtime": "nodejs", "install": ["npm", "install", "-g"]},
}
