"""
Run history — append-only per-user provisioning ledger.

Every ``xsetup run`` that gets as far as resolving its identity appends
one NDJSON line, successful or not.  The file lives in the identity's
home and is written with the identity's ownership, never root's.

The ledger is append-only: entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from xsetup.core.errors import ProvisionError
from xsetup.core.models.identity import Identity
from xsetup.core.models.run import RunRecord
from xsetup.core.services.provision.data.constants import HISTORY_FILE
from xsetup.core.services.provision.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


def history_path(identity: Identity) -> Path:
    """Ledger location for ``identity``."""
    return identity.home / HISTORY_FILE


class RunLog:
    """Append-only history ledger writer/reader.

    Args:
        path: Ledger file.
        runner: Host collaborator used for writes (owner-aware).  Only
            needed by ``write``.
        owner: Identity that must own the file.
    """

    def __init__(
        self,
        path: Path,
        *,
        runner: CommandRunner | None = None,
        owner: Identity | None = None,
    ):
        self._path = path
        self._runner = runner
        self._owner = owner

    @classmethod
    def for_identity(cls, identity: Identity, runner: CommandRunner | None = None) -> RunLog:
        return cls(history_path(identity), runner=runner, owner=identity)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, record: RunRecord) -> None:
        """Append a record to the ledger.

        A failed write is logged, not raised: the ledger never decides
        the outcome of a run.
        """
        if self._runner is None:
            raise ValueError("RunLog.write needs a runner")

        line = json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._runner.write_file(self._path, line, owner=self._owner, append=True)
            logger.debug("Run record written: %s (%s)", record.run_id, record.status)
        except (OSError, ProvisionError) as e:
            logger.error("Failed to write run record to %s: %s", self._path, e)

    def read_all(self) -> list[RunRecord]:
        """All records, oldest first.  Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        records: list[RunRecord] = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(RunRecord.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt run record at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run history %s: %s", self._path, e)

        return records

    def read_recent(self, n: int = 20) -> list[RunRecord]:
        """The most recent ``n`` records."""
        return self.read_all()[-n:] if n > 0 else []
