"""Git operations on the local clones in the store directory."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from gitsync.config_schema import Repository
from gitsync.runner import CommandRunner

logger = logging.getLogger(__name__)

SYNC_BRANCH = "gitsync-update"
COMMIT_TITLE = "chore: gitsync update"


class CommitDetails(BaseModel):
    """Commit created in a synced repository.

    Attributes:
        title: Commit subject, also used as the pull request title.
        body: Commit body listing the synced files.
    """

    title: str
    body: str

    model_config = {"frozen": True}


def clone_repository(runner: CommandRunner, repo: Repository, path: Path) -> None:
    """Clone *repo* into *path* unless the directory already exists."""
    if path.is_dir():
        return
    logger.info("%s: cloning %s into %s", repo.name, repo.url, path)
    runner.run("git", "clone", "--", repo.url, str(path))


def update_tracked_ref(runner: CommandRunner, repo: Repository, path: Path) -> None:
    """Fetch and hard reset the clone to the tracked ref."""
    ref = repo.get_ref()
    logger.info("%s: updating repository ref (%s)", repo.name, ref)
    runner.run("git", "-C", str(path), "fetch", "--force", "--all")
    runner.run("git", "-C", str(path), "checkout", "--force", ref)
    runner.run("git", "-C", str(path), "reset", "--hard", ref)


def checkout_sync_branch(runner: CommandRunner, repo: Repository, path: Path) -> None:
    """Create or reset the sync branch at the tracked ref."""
    logger.info("%s: checking out %s branch", repo.name, SYNC_BRANCH)
    runner.run(
        "git", "-C", str(path), "checkout", "--force", "-B", SYNC_BRANCH, repo.get_ref()
    )


def build_commit_details(root: Repository, changed_files: list[str]) -> CommitDetails:
    """Compose the commit message for a set of synced files."""
    lines = ["Synced the following files:", ""]
    lines.extend(f"- {path}" for path in changed_files)
    lines.append("")
    lines.append(f"Root repository ref: {root.url.removesuffix('.git')}")
    return CommitDetails(title=COMMIT_TITLE, body="\n".join(lines) + "\n")


def commit_changes(
    runner: CommandRunner,
    root: Repository,
    repo: Repository,
    path: Path,
    changed_files: list[str],
) -> CommitDetails:
    """Stage everything and commit it with a message listing *changed_files*."""
    logger.info("%s: adding changes to the index", repo.name)
    runner.run("git", "-C", str(path), "add", "--all")

    commit = build_commit_details(root, changed_files)
    logger.info("%s: committing changes", repo.name)
    runner.run("git", "-C", str(path), "commit", "-m", commit.title, "-m", commit.body)
    return commit


def push_changes(runner: CommandRunner, repo: Repository, path: Path) -> None:
    """Force push the sync branch to ``origin``."""
    logger.info("%s: pushing changes to remote", repo.name)
    runner.run("git", "-C", str(path), "push", "--force", "-u", "origin", SYNC_BRANCH)
