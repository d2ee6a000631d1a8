"""Shared pytest fixtures for gitsync tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from gitsync.config_schema import Config

# Colorized ``diff -U 0 --color=always`` output with two hunks
COLOR_DIFF = (
    "\x1b[1m--- svc-a (synced): Makefile (make)\x1b[0m\n"
    "\x1b[1m+++ root (root): Makefile (make)\x1b[0m\n"
    "\x1b[36m@@ -3 +3 @@\x1b[0m\n"
    "\x1b[31m-lint: old\x1b[0m\n"
    "\x1b[32m+lint: new\x1b[0m\n"
    "\x1b[36m@@ -10,0 +11,2 @@\x1b[0m\n"
    "\x1b[32m+test:\x1b[0m\n"
    "\x1b[32m+\tpytest\x1b[0m\n"
)

# The canonical patch the colorized output above must render to
PLAIN_DIFF = (
    "--- svc-a (synced): Makefile (make)\n"
    "+++ root (root): Makefile (make)\n"
    "@@ -3 +3 @@\n"
    "-lint: old\n"
    "+lint: new\n"
    "@@ -10,0 +11,2 @@\n"
    "+test:\n"
    "+\tpytest\n"
)

THREE_HUNK_DIFF = (
    "--- svc-a (synced): Makefile (make)\n"
    "+++ root (root): Makefile (make)\n"
    "@@ -1 +1 @@\n"
    "-a\n"
    "+A\n"
    "@@ -5 +5 @@\n"
    "-b\n"
    "+B\n"
    "@@ -9 +9 @@\n"
    "-c\n"
    "+C\n"
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: test runs real external commands"
    )


@dataclass
class Call:
    """A command recorded by ``FakeRunner``."""

    name: str
    args: tuple[str, ...]
    stdin: str | None = None
    env: dict[str, str] | None = None


class FakeRunner:
    """Minimal CommandRunner replacement for testing.

    Records every call.  ``handlers`` maps an executable name to a
    callable ``(args, stdin) -> str``; a handler may raise to simulate a
    failing command.  Unhandled commands return an empty string.
    """

    def __init__(
        self,
        handlers: dict[str, Callable[[tuple[str, ...], str | None], str]] | None = None,
    ) -> None:
        self.handlers = handlers or {}
        self.calls: list[Call] = []

    def run(
        self,
        name: str,
        *args: str,
        stdin: str | None = None,
        ok_statuses: Any = (),
        env: dict[str, str] | None = None,
    ) -> str:
        self.calls.append(Call(name, tuple(args), stdin, dict(env) if env else None))
        handler = self.handlers.get(name)
        if handler is None:
            return ""
        return handler(tuple(args), stdin)

    def calls_to(self, name: str) -> list[Call]:
        return [c for c in self.calls if c.name == name]


def make_config_data(store_path: Path | str = "/tmp/gitsync-store", **overrides: Any) -> dict:
    """Build raw (JSON-shaped) config data for testing."""
    data: dict[str, Any] = {
        "storePath": str(store_path),
        "root": {"name": "root", "url": "https://github.com/acme/root.git"},
        "syncRepositories": [
            {"name": "svc-a", "url": "https://github.com/acme/svc-a.git"},
        ],
        "syncFiles": [{"name": "make", "path": "Makefile"}],
    }
    data.update(overrides)
    return data


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """A minimal valid Config storing clones under ``tmp_path``."""
    return Config.model_validate(make_config_data(tmp_path / "store"))
