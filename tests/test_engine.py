"""Tests for the SyncEngine orchestration, using a FakeRunner."""

from __future__ import annotations

import io

import pytest

from gitsync.config_schema import Config, IgnoreRule
from gitsync.diff import Hunk
from gitsync.errors import CommandError, DependencyError, ReviewAbortedError, SyncError
from gitsync.git import COMMIT_TITLE, SYNC_BRANCH
from gitsync.sync.engine import SyncEngine
from gitsync.sync.models import SyncCommand
from gitsync.sync.review import PROMPT_MESSAGE, HunkReviewer

from .conftest import COLOR_DIFF, PLAIN_DIFF, THREE_HUNK_DIFF, FakeRunner, make_config_data

PR_URL = "https://github.com/acme/svc-a/pull/7"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _gh_handler(existing: str = "[]"):
    def handler(args, stdin):
        if args[:2] == ("auth", "token"):
            return "gho_secret\n"
        if "list" in args:
            return existing
        if "create" in args:
            return PR_URL + "\n"
        return ""

    return handler


def _runner(diff_output: str = COLOR_DIFF, **handlers) -> FakeRunner:
    def diff_handler(args, stdin):
        if args == ("--version",):
            return "diff (GNU diffutils) 3.10\n"
        return diff_output

    all_handlers = {"diff": diff_handler, "gh": _gh_handler()}
    all_handlers.update(handlers)
    return FakeRunner(all_handlers)


def _engine(
    config: Config,
    runner: FakeRunner,
    command: SyncCommand = SyncCommand.SYNC,
    answers: str | None = None,
):
    output = io.StringIO()
    prompts = io.StringIO()
    reviewer = HunkReviewer(
        input_stream=io.StringIO(answers or ""), output_stream=prompts
    )
    engine = SyncEngine(
        config,
        command,
        runner=runner,
        reviewer=reviewer,
        interactive=answers is not None,
        output=output,
    )
    return engine, output, prompts


def _diff_calls(runner: FakeRunner):
    return [c for c in runner.calls_to("diff") if c.args != ("--version",)]


def _patch_calls(runner: FakeRunner):
    return [c for c in runner.calls_to("patch") if c.args != ("--version",)]


# ---------------------------------------------------------------------------
# Diff mode
# ---------------------------------------------------------------------------


class TestDiffMode:
    """Tests for the read-only preview."""

    def test_prints_colored_preview_without_patching(self, config):
        runner = _runner()
        engine, output, prompts = _engine(config, runner, SyncCommand.DIFF)

        report = engine.run()

        text = output.getvalue()
        assert "\x1b[36m@@ -3 +3 @@\x1b[0m" in text
        assert text.startswith("=" * len("--- svc-a (synced): Makefile (make)") + "\n")
        assert _patch_calls(runner) == []
        assert runner.calls_to("gh") == []
        assert prompts.getvalue() == ""
        assert report.command is SyncCommand.DIFF
        assert report.changed_files == {}

    def test_never_prompts_even_when_interactive(self, config):
        runner = _runner()
        engine, _, prompts = _engine(config, runner, SyncCommand.DIFF, answers="n\n")

        engine.run()

        assert PROMPT_MESSAGE not in prompts.getvalue()

    def test_skips_sync_only_dependencies_and_branch(self, config):
        runner = _runner()
        engine, _, _ = _engine(config, runner, SyncCommand.DIFF)

        engine.run()

        assert not any(c.args == ("--version",) for c in runner.calls_to("gh"))
        assert not any(SYNC_BRANCH in c.args for c in runner.calls_to("git"))

    def test_fully_ignored_file_prints_nothing(self, config):
        config.ignore.append(
            IgnoreRule(
                hunks=[
                    Hunk(changes=["-lint: old", "+lint: new"]),
                    Hunk(changes=["+test:", "+\tpytest"]),
                ]
            )
        )
        runner = _runner()
        engine, output, _ = _engine(config, runner, SyncCommand.DIFF)

        engine.run()

        assert output.getvalue() == ""


# ---------------------------------------------------------------------------
# Sync mode
# ---------------------------------------------------------------------------


class TestSyncMode:
    """Tests for applying patches and publishing."""

    def test_non_interactive_applies_canonical_patch(self, config):
        runner = _runner()
        engine, output, _ = _engine(config, runner)

        report = engine.run()

        patches = _patch_calls(runner)
        assert len(patches) == 1
        synced = config.get_store_path() / "svc-a" / "Makefile"
        assert patches[0].args == (
            str(synced),
            "--input=-",
            "--reject-file=-",
            "--silent",
            "--unified",
            "--force",
        )
        assert patches[0].stdin == PLAIN_DIFF
        assert output.getvalue() == ""
        assert report.changed_files == {"svc-a": ["Makefile"]}
        assert report.pull_requests == {"svc-a": PR_URL}

    def test_diff_invocation(self, config):
        runner = _runner()
        engine, _, _ = _engine(config, runner)

        engine.run()

        (call,) = _diff_calls(runner)
        store = config.get_store_path()
        assert call.args == (
            "-U", "0",
            "--ignore-all-space",
            "--color=always",
            "--label", "svc-a (synced): Makefile (make)",
            "--label", "root (root): Makefile (make)",
            str(store / "svc-a" / "Makefile"),
            str(store / "root" / "Makefile"),
        )

    def test_prepares_every_repository_including_root(self, config):
        runner = _runner()
        engine, _, _ = _engine(config, runner)

        engine.run()

        git_args = [c.args for c in runner.calls_to("git")]
        store = config.get_store_path()
        for name, url in [
            ("svc-a", "https://github.com/acme/svc-a.git"),
            ("root", "https://github.com/acme/root.git"),
        ]:
            path = str(store / name)
            assert ("clone", "--", url, path) in git_args
            assert ("-C", path, "reset", "--hard", "origin/main") in git_args
            assert (
                "-C", path, "checkout", "--force", "-B", SYNC_BRANCH, "origin/main"
            ) in git_args

    def test_publishes_commit_push_and_pull_request(self, config):
        runner = _runner()
        engine, _, _ = _engine(config, runner)

        engine.run()

        path = str(config.get_store_path() / "svc-a")
        git_args = [c.args for c in runner.calls_to("git")]
        assert ("-C", path, "add", "--all") in git_args
        commit = [a for a in git_args if "commit" in a]
        assert len(commit) == 1
        assert commit[0][:5] == ("-C", path, "commit", "-m", COMMIT_TITLE)
        assert ("-C", path, "push", "--force", "-u", "origin", SYNC_BRANCH) in git_args

        create = [c for c in runner.calls_to("gh") if "create" in c.args]
        assert len(create) == 1
        assert create[0].env == {"GH_TOKEN": "gho_secret"}
        assert "github.com/acme/svc-a" in create[0].args

    def test_existing_pull_request_reused(self, config):
        existing = f'[{{"title": "{COMMIT_TITLE}", "url": "{PR_URL}"}}]'
        runner = _runner(gh=_gh_handler(existing))
        engine, _, _ = _engine(config, runner)

        report = engine.run()

        assert not any("create" in c.args for c in runner.calls_to("gh"))
        assert report.pull_requests == {"svc-a": PR_URL}

    def test_identical_files_do_nothing(self, config):
        runner = _runner(diff_output="")
        engine, _, prompts = _engine(config, runner, answers="y\n")

        report = engine.run()

        assert _patch_calls(runner) == []
        assert not any("commit" in c.args for c in runner.calls_to("git"))
        assert not any(c.args[:1] in (("auth",), ("-R",)) for c in runner.calls_to("gh"))
        assert prompts.getvalue() == ""
        assert not report.has_changes

    def test_every_repository_and_file_pair_diffed(self, tmp_path):
        data = make_config_data(
            tmp_path / "store",
            syncRepositories=[
                {"name": "svc-a", "url": "https://github.com/acme/svc-a.git"},
                {"name": "svc-b", "url": "https://github.com/acme/svc-b.git"},
            ],
            syncFiles=[
                {"name": "make", "path": "Makefile"},
                {"name": "lint", "path": ".golangci.yml"},
            ],
        )
        config = Config.model_validate(data)
        runner = _runner(diff_output="")
        engine, _, _ = _engine(config, runner)

        engine.run()

        labels = [c.args[5] for c in _diff_calls(runner)]
        assert labels == [
            "svc-a (synced): Makefile (make)",
            "svc-a (synced): .golangci.yml (lint)",
            "svc-b (synced): Makefile (make)",
            "svc-b (synced): .golangci.yml (lint)",
        ]


# ---------------------------------------------------------------------------
# Interactive review
# ---------------------------------------------------------------------------


class TestInteractiveSync:
    """Tests for the review flow inside a sync run."""

    def test_reject_then_accept_all_patches_remaining_hunks(self, config):
        runner = _runner(diff_output=THREE_HUNK_DIFF)
        engine, _, prompts = _engine(config, runner, answers="n\nY\n")

        engine.run()

        (patch,) = _patch_calls(runner)
        assert patch.stdin == (
            "--- svc-a (synced): Makefile (make)\n"
            "+++ root (root): Makefile (make)\n"
            "@@ -5 +5 @@\n"
            "-b\n"
            "+B\n"
            "@@ -9 +9 @@\n"
            "-c\n"
            "+C\n"
        )
        assert prompts.getvalue().count(PROMPT_MESSAGE) == 2

    def test_ignore_adds_rule_and_skips_patch(self, config):
        runner = _runner(diff_output=PLAIN_DIFF)
        engine, _, _ = _engine(config, runner, answers="i\nn\n")

        report = engine.run()

        assert _patch_calls(runner) == []
        assert not report.has_changes
        assert len(config.ignore) == 1
        rule = config.ignore[0]
        assert rule.repository_name == "svc-a"
        assert rule.file_name == "make"
        assert [h.range_header for h in rule.hunks] == ["@@ -3 +3 @@"]

    def test_closed_input_aborts_run(self, config):
        runner = _runner()
        engine, _, _ = _engine(config, runner, answers="")

        with pytest.raises(SyncError) as exc_info:
            engine.run()

        assert isinstance(exc_info.value.__cause__, ReviewAbortedError)
        assert _patch_calls(runner) == []


# ---------------------------------------------------------------------------
# Ignore rules
# ---------------------------------------------------------------------------


class TestIgnoreRules:
    def test_regex_rules_passed_to_diff(self, config):
        config.ignore.append(IgnoreRule(regex=["^# version", "^$"]))
        config.ignore.append(IgnoreRule(repository_name="svc-b", regex=["nope"]))
        runner = _runner()
        engine, _, _ = _engine(config, runner)

        engine.run()

        (call,) = _diff_calls(runner)
        assert call.args[8:12] == ("-I", "^# version", "-I", "^$")
        assert "nope" not in call.args

    def test_hunk_rule_drops_hunk_before_patching(self, config):
        config.ignore.append(
            IgnoreRule(
                repository_name="svc-a",
                file_name="make",
                hunks=[Hunk(changes=["-lint: old", "+lint: new"])],
            )
        )
        runner = _runner()
        engine, _, _ = _engine(config, runner)

        engine.run()

        (patch,) = _patch_calls(runner)
        assert "lint" not in patch.stdin
        assert "@@ -10,0 +11,2 @@" in patch.stdin

    def test_ignored_hunks_never_prompted(self, config):
        config.ignore.append(
            IgnoreRule(hunks=[Hunk(range_header="@@ -1 +1 @@", changes=["-a", "+A"])])
        )
        runner = _runner(diff_output=THREE_HUNK_DIFF)
        engine, _, prompts = _engine(config, runner, answers="y\ny\n")

        engine.run()

        assert prompts.getvalue().count(PROMPT_MESSAGE) == 2
        (patch,) = _patch_calls(runner)
        assert "@@ -1 +1 @@" not in patch.stdin


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    """Tests for fail-fast error propagation."""

    def test_missing_dependency(self, config):
        def missing(args, stdin):
            raise CommandError(["patch", *args], "not found")

        runner = _runner(patch=missing)
        engine, _, _ = _engine(config, runner)

        with pytest.raises(DependencyError, match="'patch'"):
            engine.run()
        assert not any("clone" in c.args for c in runner.calls_to("git"))

    def test_diff_failure_names_repository_and_file(self, config):
        def broken(args, stdin):
            if args == ("--version",):
                return ""
            raise CommandError(["diff", *args], "No such file or directory", 2)

        runner = _runner(diff=broken)
        engine, _, _ = _engine(config, runner)

        with pytest.raises(SyncError, match="failed to sync svc-a repository file: make"):
            engine.run()

    def test_parse_failure_wrapped(self, config):
        runner = _runner(diff_output="--- a\n+++ b\n-orphan\n")
        engine, _, _ = _engine(config, runner)

        with pytest.raises(SyncError, match="missing hunk header"):
            engine.run()

    def test_patch_failure_stops_before_publishing(self, config):
        def patch(args, stdin):
            if args == ("--version",):
                return ""
            raise CommandError(["patch", *args], "hunk FAILED", 1)

        runner = _runner(patch=patch)
        engine, _, _ = _engine(config, runner)

        with pytest.raises(SyncError, match="hunk FAILED"):
            engine.run()
        assert not any("push" in c.args for c in runner.calls_to("git"))

    def test_prepare_failure(self, config):
        def git(args, stdin):
            if "clone" in args:
                raise CommandError(["git", *args], "repository not found", 128)
            return ""

        runner = _runner(git=git)
        engine, _, _ = _engine(config, runner)

        with pytest.raises(SyncError, match="failed to prepare repository svc-a"):
            engine.run()
        assert _diff_calls(runner) == []

    def test_publish_failure(self, config):
        def git(args, stdin):
            if "push" in args:
                raise CommandError(["git", *args], "permission denied", 128)
            return ""

        runner = _runner(git=git)
        engine, _, _ = _engine(config, runner)

        with pytest.raises(SyncError, match="failed to publish changes to svc-a"):
            engine.run()
