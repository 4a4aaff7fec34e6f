"""
L3 Detection — Target identity resolution.

Read-only: consults the process UID, ``SUDO_USER`` and the system
user database.  Never guesses ``/home/<user>``.
"""

from __future__ import annotations

import logging
import os
import pwd
from collections.abc import Callable, Mapping

from xsetup.core.errors import ConfigError
from xsetup.core.models.identity import Identity

logger = logging.getLogger(__name__)


def _from_passwd(entry: pwd.struct_passwd) -> Identity:
    return Identity(
        name=entry.pw_name,
        home=entry.pw_dir,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        shell=entry.pw_shell,
    )


def current_user_name(
    euid: int | None = None,
    *,
    getpwuid: Callable[[int], pwd.struct_passwd] = pwd.getpwuid,
) -> str:
    """Name of the user this process runs as."""
    uid = os.geteuid() if euid is None else euid
    try:
        return getpwuid(uid).pw_name
    except KeyError:
        raise ConfigError(f"No user database entry for uid {uid}") from None


def resolve_identity(
    *,
    euid: int | None = None,
    environ: Mapping[str, str] | None = None,
    getpwnam: Callable[[str], pwd.struct_passwd] = pwd.getpwnam,
    getpwuid: Callable[[int], pwd.struct_passwd] = pwd.getpwuid,
) -> Identity:
    """Work out which user the run acts for.

    A non-empty ``SUDO_USER`` wins over the literal process user, so
    ``sudo xsetup run`` provisions the human who typed it rather than
    root.  Without it the current user is the identity.

    Raises:
        ConfigError: If the resolved name has no user database entry.
    """
    env = os.environ if environ is None else environ
    sudo_user = (env.get("SUDO_USER") or "").strip()

    if sudo_user:
        name = sudo_user
        logger.debug("Escalated invocation: acting for SUDO_USER=%s", name)
    else:
        name = current_user_name(euid, getpwuid=getpwuid)

    try:
        entry = getpwnam(name)
    except KeyError:
        raise ConfigError(
            f"No user database entry for '{name}'; cannot determine a home directory"
        ) from None

    identity = _from_passwd(entry)
    logger.info("Target identity: %s (home=%s, shell=%s)", identity.name, identity.home, identity.shell)
    return identity


def lookup_login_shell(
    name: str,
    *,
    getpwnam: Callable[[str], pwd.struct_passwd] = pwd.getpwnam,
) -> str:
    """Currently configured login shell for ``name`` (fresh read)."""
    try:
        return getpwnam(name).pw_shell
    except KeyError:
        raise ConfigError(f"No user database entry for '{name}'") from None
