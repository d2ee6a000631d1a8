"""Core sync engine that orchestrates a full gitsync run.

The ``SyncEngine`` ties together the git clones, the diff model, the
ignore rules and the interactive review into a complete run.  It:

1. Verifies the required executables are installed.
2. Clones (or refreshes) the root and every synced repository.
3. In sync mode, checks out the ``gitsync-update`` branch everywhere.
4. For every synced repository x tracked file, diffs the repository's
   copy against the root's, drops ignored hunks, lets the operator
   review the rest, and applies (sync) or prints (diff) the result.
5. In sync mode, commits, pushes and opens a pull request for every
   repository that received changes.
6. Builds and returns a ``SyncReport``.

Error handling is fail-fast: the first failing repository file aborts
the run, wrapped in a ``SyncError`` naming the repository and file.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

from gitsync import git
from gitsync.config_schema import Config, Repository, SyncFile
from gitsync.diff import parse_diff_output
from gitsync.errors import GitsyncError, SyncError
from gitsync.github import open_pull_request
from gitsync.runner import CommandRunner, check_dependencies
from gitsync.sync.ignore import filter_ignored_hunks, regex_arguments
from gitsync.sync.models import SyncCommand, SyncReport
from gitsync.sync.review import HunkReviewer, review_hunks, separator_line

logger = logging.getLogger(__name__)

# ``diff`` exits with 1 when the inputs differ
DIFF_STATUS_DIFFERENT = 1


class SyncEngine:
    """Run ``sync`` or ``diff`` for every synced repository and file.

    Args:
        config: Loaded configuration.  Its ``ignore`` list is extended in
            place when the operator ignores a hunk.
        command: Run mode.
        runner: Executes external commands.
        reviewer: Prompts for hunk decisions.
        interactive: Prompt for each hunk in sync mode.  Defaults to
            ``True``; diff mode never prompts.
        output: Stream the diff preview is printed to.
    """

    def __init__(
        self,
        config: Config,
        command: SyncCommand,
        *,
        runner: CommandRunner | None = None,
        reviewer: HunkReviewer | None = None,
        interactive: bool = True,
        output: TextIO | None = None,
    ) -> None:
        self.config = config
        self.command = command
        self.runner = runner or CommandRunner()
        self.reviewer = reviewer or HunkReviewer()
        self.interactive = interactive and command is SyncCommand.SYNC
        self.output = output or sys.stdout

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> SyncReport:
        """Execute a full run.

        Returns:
            A ``SyncReport`` listing patched files and opened pull requests.

        Raises:
            GitsyncError: On the first failure; nothing is retried.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        sync = self.command is SyncCommand.SYNC

        check_dependencies(self.runner, sync=sync)

        store_path = self.config.get_store_path()
        try:
            store_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SyncError(
                f"failed to create repositories store under {store_path}: {exc}"
            ) from exc

        for repo in [*self.config.repositories, self.config.root]:
            self._prepare_repository(repo)

        changed_files: dict[str, list[str]] = {}
        for repo in self.config.repositories:
            for sync_file in self.config.sync_files:
                try:
                    changed = self.sync_repo_file(repo, sync_file)
                except GitsyncError as exc:
                    raise SyncError(
                        f"failed to sync {repo.name} repository file: "
                        f"{sync_file.name}: {exc}"
                    ) from exc
                if changed:
                    changed_files.setdefault(repo.name, []).append(sync_file.path)

        pull_requests: dict[str, str] = {}
        if sync:
            if not changed_files:
                logger.info("No changes to synchronize.")
            for repo in self.config.repositories:
                if repo.name in changed_files:
                    pull_requests[repo.name] = self._publish(
                        repo, changed_files[repo.name]
                    )

        return SyncReport(
            command=self.command,
            changed_files=changed_files,
            pull_requests=pull_requests,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Per repository file
    # ------------------------------------------------------------------

    def sync_repo_file(self, repo: Repository, sync_file: SyncFile) -> bool:
        """Diff one repository file against the root's copy.

        Returns:
            ``True`` if a patch was applied (sync mode only).
        """
        synced_path = self.config.repository_path(repo) / sync_file.path
        root_path = self.config.repository_path(self.config.root) / sync_file.path

        out = self._run_diff(repo, sync_file, synced_path, root_path)
        if not out:
            return False

        unified = parse_diff_output(out)
        hunks = filter_ignored_hunks(
            self.config.ignore, repo.name, sync_file.name, unified.hunks
        )
        if self.interactive:
            hunks = review_hunks(
                hunks,
                unified.header,
                rules=self.config.ignore,
                repository=repo,
                sync_file=sync_file,
                reviewer=self.reviewer,
            )
        if not hunks:
            return False

        unified = unified.with_hunks(hunks)
        if self.command is SyncCommand.DIFF:
            patch = unified.render(original=True)
            sep = separator_line(patch.split("\n"))
            self.output.write(f"{sep}\n{patch}")
            self.output.flush()
            return False

        self._apply_patch(synced_path, unified.render())
        return True

    def _run_diff(
        self,
        repo: Repository,
        sync_file: SyncFile,
        synced_path: Path,
        root_path: Path,
    ) -> str:
        """Run ``diff`` with zero context and the applicable regex rules."""
        args = [
            "-U", "0",
            "--ignore-all-space",
            "--color=always",
            "--label", f"{repo.name} (synced): {sync_file.path} ({sync_file.name})",
            "--label",
            f"{self.config.root.name} (root): {sync_file.path} ({sync_file.name})",
        ]
        args.extend(regex_arguments(self.config.ignore, repo.name, sync_file.name))
        args.extend([str(synced_path), str(root_path)])
        return self.runner.run("diff", *args, ok_statuses=(DIFF_STATUS_DIFFERENT,))

    def _apply_patch(self, path: Path, patch: str) -> None:
        logger.info("Applying patch to %s", path)
        try:
            self.runner.run(
                "patch",
                str(path),
                "--input=-",
                "--reject-file=-",
                "--silent",
                "--unified",
                "--force",
                stdin=patch,
            )
        except GitsyncError:
            logger.error("Failed to apply patch to %s:\n%s", path, patch)
            raise

    # ------------------------------------------------------------------
    # Repository preparation and publishing
    # ------------------------------------------------------------------

    def _prepare_repository(self, repo: Repository) -> None:
        path = self.config.repository_path(repo)
        try:
            git.clone_repository(self.runner, repo, path)
            git.update_tracked_ref(self.runner, repo, path)
            if self.command is SyncCommand.SYNC:
                git.checkout_sync_branch(self.runner, repo, path)
        except GitsyncError as exc:
            raise SyncError(f"failed to prepare repository {repo.name}: {exc}") from exc

    def _publish(self, repo: Repository, files: list[str]) -> str:
        """Commit, push and open a pull request; return the PR URL."""
        path = self.config.repository_path(repo)
        try:
            commit = git.commit_changes(
                self.runner, self.config.root, repo, path, files
            )
            git.push_changes(self.runner, repo, path)
            return open_pull_request(self.runner, repo, commit)
        except GitsyncError as exc:
            raise SyncError(
                f"failed to publish changes to {repo.name} repository: {exc}"
            ) from exc
