"""Pull request creation through the GitHub CLI (``gh``)."""

from __future__ import annotations

import json
import logging
from urllib.parse import urlparse

from pydantic import BaseModel, TypeAdapter, ValidationError

from gitsync.config_schema import Repository
from gitsync.errors import GitsyncError
from gitsync.git import SYNC_BRANCH, CommitDetails
from gitsync.runner import CommandRunner

logger = logging.getLogger(__name__)

GITSYNC_URL = "https://github.com/nieomylnieja/gitsync"


class PullRequest(BaseModel):
    """Pull request entry returned by ``gh pr list --json title,url``."""

    title: str
    url: str

    model_config = {"frozen": True}

_PR_LIST_ADAPTER = TypeAdapter(list[PullRequest])


def github_repo_slug(url: str) -> str:
    """Return ``host/owner/name`` for a repository URL.

    Examples:
        >>> github_repo_slug("https://github.com/acme/widgets.git")
        'github.com/acme/widgets'
    """
    parsed = urlparse(url)
    if not parsed.netloc:
        raise GitsyncError(f"failed to parse repository URL: {url}")
    return f"{parsed.netloc}{parsed.path.removesuffix('.git')}"


def open_pull_request(
    runner: CommandRunner, repo: Repository, commit: CommitDetails
) -> str:
    """Open a pull request for the sync branch unless one already exists.

    Args:
        runner: Command runner used for ``gh`` calls.
        repo: The synced repository.
        commit: Commit whose title and body become the PR title and body.

    Returns:
        URL of the created or already existing pull request.
    """
    slug = github_repo_slug(repo.url)
    token = runner.run("gh", "auth", "token").strip()
    env = {"GH_TOKEN": token}

    out = runner.run(
        "gh", "-R", slug, "pr", "list",
        "--search", commit.title,
        "--json", "title,url",
        env=env,
    )
    try:
        existing = _PR_LIST_ADAPTER.validate_python(json.loads(out or "[]"))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise GitsyncError(
            f"failed to decode GitHub pull requests list response: {exc}"
        ) from exc

    for pr in existing:
        if pr.title == commit.title:
            logger.info(
                "%s: pull request already exists, skipping creation (%s)",
                repo.name,
                pr.url,
            )
            return pr.url

    logger.info("%s: opening GitHub pull request", repo.name)
    body = commit.body + f"\nPull request generated by [gitsync]({GITSYNC_URL})"
    out = runner.run(
        "gh", "-R", slug, "pr", "create",
        "--title", commit.title,
        "--body", body,
        "--assignee", "@me",
        # gh only accepts a bare branch name as base
        "--base", repo.get_ref().removeprefix("origin/"),
        "--head", SYNC_BRANCH,
        env=env,
    )
    url = out.strip()
    logger.info("%s: pull request URL: %s", repo.name, url)
    return url
