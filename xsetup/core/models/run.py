"""
RunRecord — one line of the per-user provisioning history.

Serialized to ``~/.local/state/xsetup/history.ndjson`` by
``persistence/run_log.py``.  Informational only: nothing in a run
reads it back to decide what to do.  Re-run safety rests on the
filesystem idempotency markers, not on this ledger.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RunRecord(BaseModel):
    """Summary of a single ``xsetup run`` invocation."""

    timestamp: str = Field(default_factory=_now_iso)
    run_id: str = ""

    profile: str = ""
    manager: str = ""
    user: str = ""
    architecture: str = ""

    status: Literal["ok", "failed"] = "ok"
    stages: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None
