"""
L0 Data — Architecture map, host paths, well-known URLs.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Kernel machine name (``uname -m``) → APT repository architecture tag.
# Anything not listed is a hard stop: a wrong tag only surfaces later
# as a 404 from the mirror.
ARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",       # some kernels/containers report the Debian name
    "armv7l": "armhf",
    "ppc64el": "ppc64el",
    "ppc64le": "ppc64el",   # what Linux actually reports on POWER LE
    "riscv64": "riscv64",
    "s390x": "s390x",
}

# Only x86_64 lives on the main archive; every other tag is on -ports.
PRIMARY_ARCHIVE_ARCHES: frozenset[str] = frozenset({"x86_64"})

# Host paths, relative to the system root (tests point the root at tmp_path).
OS_RELEASE = "etc/os-release"
APT_SOURCES_LIST = "etc/apt/sources.list"
APT_SOURCES_DIR = "etc/apt/sources.list.d"
APT_DEFAULT_SOURCES = "etc/apt/sources.list.d/ubuntu.sources"
APT_LISTS_DIR = "var/lib/apt/lists"
FDFIND_BIN = "usr/bin/fdfind"
FD_LINK = "usr/local/bin/fd"
LOCK_FILE = "run/lock/xsetup.lock"

BACKUP_SUFFIX = ".bak"
DISABLED_SOURCES_STUB = "# Intentionally disabled by xsetup.\n"

# A PATH that does not depend on whoever launched us (sudo resets it anyway).
SYSTEM_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

# Per-identity locations, relative to the identity's home.
EDITOR_CONFIG_DIR = ".config/nvim"
HISTORY_FILE = ".local/state/xsetup/history.ndjson"

# Release download defaults
DOWNLOAD_TIMEOUT = 120
USER_AGENT = "xsetup/0.1"
