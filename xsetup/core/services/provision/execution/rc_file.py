"""
L4 Execution — Idempotent shell rc-file stanzas.

A stanza is a block fenced by begin/end marker lines.  The marker is
the idempotency check: it is looked for before appending, every time,
so appending the same stanza twice leaves exactly one copy.

Lines left behind by older setups (``. ~/.asdf/asdf.sh``, bare
``ASDF_DATA_DIR`` exports, another manager's activation) are removed
first, but only outside xsetup's own blocks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from xsetup.core.errors import HostEnvironmentError
from xsetup.core.models.identity import Identity
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RcStanza:
    """A named block of shell lines."""

    name: str
    lines: tuple[str, ...]
    stale_patterns: tuple[str, ...] = field(default=())

    @property
    def begin(self) -> str:
        return f"# >>> xsetup: {self.name} >>>"

    @property
    def end(self) -> str:
        return f"# <<< xsetup: {self.name} <<<"

    def render(self) -> str:
        return "\n".join([self.begin, *self.lines, self.end]) + "\n"


_BLOCK_RE = re.compile(r"^# >>> xsetup: (?P<name>\S+) >>>$")


def _split_blocks(text: str) -> list[tuple[str | None, list[str]]]:
    """Split rc text into (block name | None, lines) segments.

    A begin marker that is never closed does not open a block: the
    marker line is dropped and the lines after it stay unfenced.
    """
    segments: list[tuple[str | None, list[str]]] = []
    current: list[str] = []
    block: str | None = None
    for line in text.splitlines():
        if block is None:
            m = _BLOCK_RE.match(line)
            if m:
                if current:
                    segments.append((None, current))
                block, current = m.group("name"), [line]
                continue
            current.append(line)
        else:
            current.append(line)
            if line == f"# <<< xsetup: {block} <<<":
                segments.append((block, current))
                block, current = None, []
    if block is not None:
        logger.warning("Unterminated xsetup '%s' block; keeping the lines after its marker", block)
        segments.extend(_split_blocks("\n".join(current[1:])))
    elif current:
        segments.append((None, current))
    return segments


def clean_rc_text(text: str, *, drop_blocks: set[str], stale_patterns: tuple[str, ...]) -> str:
    """Remove other managers' blocks and stale lines outside xsetup blocks."""
    patterns = [re.compile(p) for p in stale_patterns]
    kept: list[str] = []
    for name, lines in _split_blocks(text):
        if name is not None:
            if name not in drop_blocks:
                kept.extend(lines)
            continue
        kept.extend(line for line in lines if not any(p.search(line) for p in patterns))
    result = "\n".join(kept)
    if kept:
        result += "\n"
    return result


def has_stanza(text: str, stanza: RcStanza) -> bool:
    return any(line == stanza.begin for line in text.splitlines())


def _read(path: Path) -> str:
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise HostEnvironmentError(f"Cannot read {path}: {e}") from e


def append_stanza(runner: CommandRunner, identity: Identity, path: Path, stanza: RcStanza) -> bool:
    """Append ``stanza`` to ``path`` unless its marker is already there.

    Returns:
        True if the file was changed.
    """
    text = _read(path)
    if has_stanza(text, stanza):
        logger.debug("Stanza '%s' already present in %s", stanza.name, path)
        return False
    prefix = "\n" if text and not text.endswith("\n\n") else ""
    if text and not text.endswith("\n"):
        prefix = "\n\n"
    runner.write_file(path, prefix + stanza.render(), owner=identity, append=True)
    logger.info("Added '%s' stanza to %s", stanza.name, path)
    return True


def configure_rc_file(
    runner: CommandRunner,
    identity: Identity,
    path: Path,
    stanza: RcStanza,
    *,
    replaces: tuple[str, ...] = (),
) -> bool:
    """Bring ``path`` to the state "exactly one ``stanza``, nothing stale".

    Args:
        replaces: Names of other xsetup stanzas to drop (the manager
            that this one supersedes).

    Returns:
        True if the file was changed.
    """
    original = _read(path)
    cleaned = clean_rc_text(
        original,
        drop_blocks=set(replaces) - {stanza.name},
        stale_patterns=stanza.stale_patterns,
    )
    changed = False
    if cleaned != original and original:
        runner.write_file(path, cleaned, owner=identity)
        logger.info("Removed stale shell setup lines from %s", path)
        changed = True
    elif not path.exists():
        runner.write_file(path, "", owner=identity)
    return append_stanza(runner, identity, path, stanza) or changed
