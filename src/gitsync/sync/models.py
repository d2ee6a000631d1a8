"""Pydantic models for a sync run.

- ``SyncCommand``: Enum of the two run modes.
- ``SyncReport``: Aggregate results for a full run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SyncCommand(str, Enum):
    """Run modes: apply accepted changes, or preview them only."""

    SYNC = "sync"
    DIFF = "diff"


class SyncReport(BaseModel):
    """Aggregate report for a full run.

    Attributes:
        command: The mode the run was executed in.
        changed_files: Repository name -> paths patched in it.
        pull_requests: Repository name -> pull request URL.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    command: SyncCommand
    changed_files: dict[str, list[str]] = Field(default_factory=dict)
    pull_requests: dict[str, str] = Field(default_factory=dict)
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        """``True`` if at least one file was patched."""
        return any(self.changed_files.values())
