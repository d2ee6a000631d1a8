"""Configuration schema for gitsync.

Defines Pydantic models for the JSON configuration file: the root
repository, the repositories kept in sync with it, the tracked files,
and the ignore rules applied when comparing them.

JSON keys are camelCase (``syncRepositories``, ``repositoryName``) and
mapped onto snake_case attributes through aliases.  Unknown keys are
rejected.

Usage:
    from gitsync.config_schema import Config

    config = Config.model_validate(raw)
    store = config.get_store_path()
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from gitsync.diff import Hunk
from gitsync.errors import InvalidRuleError

logger = logging.getLogger(__name__)

DEFAULT_REF = "origin/main"


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class Repository(BaseModel):
    """A git repository taking part in the sync.

    Attributes:
        name: Unique name, also the clone directory under the store path.
        url: Clone URL.
        ref: Tracked ref; defaults to ``origin/main``.
    """

    name: str = Field(min_length=1, description="Repository name")
    url: str = Field(min_length=1, description="Repository clone URL")
    ref: str | None = Field(default=None, description="Tracked git ref")

    model_config = {"extra": "forbid", "frozen": True}

    def get_ref(self) -> str:
        """Return the configured ref or the default one."""
        return self.ref or DEFAULT_REF


class SyncFile(BaseModel):
    """A tracked file: a logical name and its path inside each repository."""

    name: str = Field(min_length=1, description="Logical file name")
    path: str = Field(min_length=1, description="Path relative to the repository root")

    model_config = {"extra": "forbid", "frozen": True}


class IgnoreRule(BaseModel):
    """A persisted policy entry suppressing lines or whole hunks.

    Exactly one payload is set: ``regex`` patterns are passed to
    ``diff -I`` before hunks are formed, ``hunks`` are matched against
    parsed hunks afterwards.  Unset scopes apply to every repository or
    every tracked file.

    The older single-valued ``regex`` string and ``hunk`` object shapes
    are accepted and normalised into lists.
    """

    repository_name: str | None = Field(default=None, alias="repositoryName")
    file_name: str | None = Field(default=None, alias="fileName")
    regex: list[str] | None = None
    hunks: list[Hunk] | None = None

    model_config = {"extra": "forbid", "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _normalise_legacy_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if isinstance(data.get("regex"), str):
            data["regex"] = [data["regex"]]
        if "hunk" in data:
            hunk = data.pop("hunk")
            if hunk is not None:
                data["hunks"] = [*(data.get("hunks") or []), hunk]
        return data

    @model_validator(mode="after")
    def _check_payload(self) -> IgnoreRule:
        if self.regex is None and self.hunks is None:
            raise InvalidRuleError("either 'regex' or 'hunks' needs to be defined")
        if self.regex is not None and self.hunks is not None:
            raise InvalidRuleError("only one of 'regex' or 'hunks' can be defined")
        return self

    def in_scope(self, repository_name: str, file_name: str) -> bool:
        """Return ``True`` if the rule applies to this repository and file."""
        if self.repository_name is not None and self.repository_name != repository_name:
            return False
        if self.file_name is not None and self.file_name != file_name:
            return False
        return True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class Config(BaseModel):
    """Top-level gitsync configuration.

    ``ignore`` is the only part mutated during a run: interactive sync
    appends hunk rules to it, and the caller persists it by saving.
    """

    store_path: str | None = Field(default=None, alias="storePath")
    root: Repository
    ignore: list[IgnoreRule] = Field(default_factory=list)
    repositories: list[Repository] = Field(alias="syncRepositories")
    sync_files: list[SyncFile] = Field(alias="syncFiles")

    model_config = {"extra": "forbid", "populate_by_name": True}

    @model_validator(mode="after")
    def _check_consistency(self) -> Config:
        if not self.repositories:
            raise ValueError("at least one repository is required")
        if not self.sync_files:
            raise ValueError("at least one file to keep in sync is required")

        seen: set[str] = set()
        for repo in [*self.repositories, self.root]:
            if repo.name in seen:
                raise ValueError(f"repository name '{repo.name}' is not unique")
            seen.add(repo.name)

        seen = set()
        for sync_file in self.sync_files:
            if sync_file.name in seen:
                raise ValueError(f"file name '{sync_file.name}' is not unique")
            seen.add(sync_file.name)

        for rule in self.ignore:
            if rule.repository_name == self.root.name:
                raise InvalidRuleError(
                    f"ignore rules cannot be scoped to the root repository "
                    f"'{self.root.name}'"
                )
        return self

    def get_store_path(self) -> Path:
        """Resolve the directory repositories are cloned into.

        Defaults to ``$XDG_DATA_HOME/gitsync`` or
        ``~/.local/share/gitsync``.  A configured path has ``${VAR}``,
        ``${VAR:-default}``, ``$VAR`` and ``~`` expanded.
        """
        # Deferred: config_loader imports this module
        from gitsync.config_loader import interpolate_env_vars

        if not self.store_path:
            data_home = os.environ.get("XDG_DATA_HOME")
            if data_home:
                return Path(data_home) / "gitsync"
            return Path.home() / ".local" / "share" / "gitsync"
        expanded = os.path.expandvars(interpolate_env_vars(self.store_path))
        return Path(expanded).expanduser()

    def repository_path(self, repo: Repository) -> Path:
        """Return the local clone directory of *repo*."""
        return self.get_store_path() / repo.name
