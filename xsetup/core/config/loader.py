"""
Configuration loader — reads xsetup.yml into a SetupConfig.

The file is optional.  Search order:

    1. explicit path (``--config``)          — must exist
    2. ``$XSETUP_CONFIG``                    — must exist
    3. ``./xsetup.yml``
    4. ``~/.config/xsetup/config.yml``

Nothing found means defaults.  A file that exists but does not parse
or validate is a ``ConfigError``, raised before the run touches the host.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from xsetup.core.errors import ConfigError
from xsetup.core.models.config import SetupConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "xsetup.yml"
CONFIG_ENV = "XSETUP_CONFIG"
USER_CONFIG = Path(".config") / "xsetup" / "config.yml"


def find_config_file(
    start_dir: Path | None = None,
    *,
    home: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Path | None:
    """Locate the config file, or None when the defaults apply.

    Raises:
        ConfigError: If ``$XSETUP_CONFIG`` points at a missing file.
    """
    env = os.environ if environ is None else environ

    from_env = env.get(CONFIG_ENV, "").strip()
    if from_env:
        path = Path(from_env).expanduser()
        if not path.is_file():
            raise ConfigError(f"{CONFIG_ENV} points to a missing file: {path}")
        return path

    candidate = (start_dir or Path.cwd()) / CONFIG_FILE
    if candidate.is_file():
        return candidate

    user_file = (home or Path.home()) / USER_CONFIG
    if user_file.is_file():
        return user_file

    return None


def load_config(
    path: Path | None = None,
    *,
    explicit: bool = False,
    home: Path | None = None,
) -> SetupConfig:
    """Load and validate the configuration.

    Args:
        path: Config file path. If None, searches the default locations.
        explicit: The path came from the user, so it must exist.
        home: Home whose per-user config is searched (default: $HOME).

    Returns:
        Validated SetupConfig (all defaults when no file is found).

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            not YAML, not a mapping, or fails validation.
    """
    if path is None:
        path = find_config_file(home=home)
        if path is None:
            logger.debug("No config file found, using defaults")
            return SetupConfig()
    elif not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return SetupConfig()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return SetupConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = SetupConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info(
        "Loaded config %s (profile=%s, manager=%s, mirror=%s)",
        path, config.profile.value, config.manager.name, config.apt.mirror,
    )
    return config
