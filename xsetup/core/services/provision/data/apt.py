"""
L0 Data — APT package lists and mirrors.
"""

from __future__ import annotations

from xsetup.core.models.profile import Profile

# Compiler toolchain plus the headers python/ruby-style source builds need.
BASE_PACKAGES: tuple[str, ...] = (
    "build-essential", "git", "curl", "unzip", "jq",
    "libssl-dev", "zlib1g-dev", "libbz2-dev", "libreadline-dev",
    "libsqlite3-dev", "libncurses5-dev", "libffi-dev",
    "zsh", "bat", "ripgrep", "fd-find",
)

# Installed by the root bootstrap so the rest of the run has sudo/curl/git.
BOOTSTRAP_PACKAGES: tuple[str, ...] = ("sudo", "curl", "git", "liblzma-dev")

# Additional OS packages per tier (cumulative, like the tool tables).
PROFILE_APT_PACKAGES: dict[Profile, tuple[str, ...]] = {
    Profile.MINI: (),
    Profile.FULL: (),
    Profile.EXTRA: ("ffmpegthumbnailer", "unar"),
}

COMPONENTS = "main restricted universe multiverse"

# Suites written by the base system stage / by the root bootstrap.
BASE_SUITES: tuple[str, ...] = ("", "-updates", "-backports", "-security")
BOOTSTRAP_SUITES: tuple[str, ...] = ("", "-updates", "-security")

# preset → (primary archive, ports archive)
MIRRORS: dict[str, tuple[str, str]] = {
    "tuna": (
        "https://mirrors.tuna.tsinghua.edu.cn/ubuntu",
        "https://mirrors.tuna.tsinghua.edu.cn/ubuntu-ports",
    ),
    "official": (
        "http://archive.ubuntu.com/ubuntu",
        "http://ports.ubuntu.com/ubuntu-ports",
    ),
}

APT_ENV: dict[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}
