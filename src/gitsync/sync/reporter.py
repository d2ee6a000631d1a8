"""Sync report formatting: ``format_sync_report`` renders the post-run summary."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport

from .models import SyncCommand


def format_sync_report(report: SyncReport) -> str:
    """Format a completed run as human-readable text.

    Sections are only included when they contain at least one entry.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"gitsync {report.command.value} report"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.command is SyncCommand.DIFF:
        lines.append("Diff mode: no changes were applied.")
        return "\n".join(lines).rstrip()

    if not report.has_changes:
        lines.append("No changes to synchronize.")
        return "\n".join(lines).rstrip()

    total = sum(len(files) for files in report.changed_files.values())
    lines.append(
        f"Synced {total} files across {len(report.changed_files)} repositories"
    )
    lines.append("")

    for repo_name, files in report.changed_files.items():
        lines.append(f"{repo_name}:")
        for path in files:
            lines.append(f"  {path}")
        url = report.pull_requests.get(repo_name)
        if url:
            lines.append(f"  pull request: {url}")
        lines.append("")

    return "\n".join(lines).rstrip()
