"""Selective patch synchronisation engine.

Public API for propagating a root repository's tracked files into the
synced repositories, one reviewable hunk at a time.

Architecture
------------
Hunks are produced by GNU ``diff -U 0`` and consumed by GNU ``patch``;
this package is the filtering and decision layer between the two.
Ignore rules act twice: regex rules suppress lines inside ``diff``
itself, hunk rules drop whole hunks after parsing.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates a full run.
- ``ignore``    -- ignore rule queries and the ``i`` decision's rule update.
- ``review``    -- ``HunkReviewer`` and ``review_hunks``: interactive review.
- ``models``    -- ``SyncCommand``, ``SyncReport``: run data contracts.
- ``reporter``  -- Human-readable report formatting.

The diff model itself lives in ``gitsync.diff``.

Usage example
-------------
::

    from gitsync.config_loader import load_config, save_config
    from gitsync.sync import SyncCommand, SyncEngine, format_sync_report

    config, path = load_config("config.json")
    report = SyncEngine(config, SyncCommand.SYNC).run()
    print(format_sync_report(report))
    save_config(config, path)
"""

from .engine import SyncEngine
from .ignore import (
    add_hunk_ignore_rule,
    filter_ignored_hunks,
    get_ignore_rules,
    is_hunk_ignored,
    regex_arguments,
)
from .models import SyncCommand, SyncReport
from .reporter import format_sync_report
from .review import HunkReviewer, ReviewDecision, review_hunks

__all__ = [
    "HunkReviewer",
    "ReviewDecision",
    "SyncCommand",
    "SyncEngine",
    "SyncReport",
    "add_hunk_ignore_rule",
    "filter_ignored_hunks",
    "format_sync_report",
    "get_ignore_rules",
    "is_hunk_ignored",
    "regex_arguments",
    "review_hunks",
]
