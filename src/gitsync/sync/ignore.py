"""Ignore rule queries and updates.

Ignore rules act in two layers:

- ``regex`` rules are turned into ``diff -I`` arguments, so matching
  lines are suppressed before ``diff`` forms hunks around them.
- ``hunks`` rules are evaluated after parsing and drop any hunk that a
  rule hunk ``matches``.

The rule list is owned by the ``Config`` passed to the engine and is
mutated in place when the operator chooses to ignore a hunk.
"""

from __future__ import annotations

import logging

from gitsync.config_schema import IgnoreRule
from gitsync.diff import Hunk

logger = logging.getLogger(__name__)


def get_ignore_rules(
    rules: list[IgnoreRule],
    repository_name: str,
    file_name: str,
    *,
    regex: bool = False,
    hunk: bool = False,
) -> list[IgnoreRule]:
    """Return the rules applying to a repository file, in insertion order.

    Args:
        rules: All configured ignore rules.
        repository_name: Name of the synced repository.
        file_name: Logical name of the tracked file.
        regex: Include rules carrying regex patterns.
        hunk: Include rules carrying hunks.
    """
    matching: list[IgnoreRule] = []
    for rule in rules:
        if not rule.in_scope(repository_name, file_name):
            continue
        if regex and rule.regex is not None:
            matching.append(rule)
        elif hunk and rule.hunks is not None:
            matching.append(rule)
    return matching


def regex_arguments(
    rules: list[IgnoreRule], repository_name: str, file_name: str
) -> list[str]:
    """Build the ``-I <pattern>`` arguments for the ``diff`` invocation."""
    args: list[str] = []
    for rule in get_ignore_rules(rules, repository_name, file_name, regex=True):
        for pattern in rule.regex or []:
            args.extend(["-I", pattern])
    return args


def is_hunk_ignored(
    rules: list[IgnoreRule], repository_name: str, file_name: str, hunk: Hunk
) -> bool:
    """Return ``True`` if any applicable hunk rule matches *hunk*."""
    for rule in get_ignore_rules(rules, repository_name, file_name, hunk=True):
        for ignored in rule.hunks or []:
            if ignored.matches(hunk):
                return True
    return False


def filter_ignored_hunks(
    rules: list[IgnoreRule],
    repository_name: str,
    file_name: str,
    hunks: list[Hunk],
) -> list[Hunk]:
    """Drop ignored hunks, preserving the order of the rest."""
    kept = [
        h for h in hunks if not is_hunk_ignored(rules, repository_name, file_name, h)
    ]
    if len(kept) != len(hunks):
        logger.debug(
            "%s: %s: %d of %d hunks ignored",
            repository_name,
            file_name,
            len(hunks) - len(kept),
            len(hunks),
        )
    return kept


def add_hunk_ignore_rule(
    rules: list[IgnoreRule], repository_name: str, file_name: str, hunk: Hunk
) -> IgnoreRule:
    """Persist *hunk* as ignored for exactly this repository and file.

    A copy of the hunk is appended to the first hunk rule scoped to the
    same (repository, file) pair; a new rule is created when none
    exists.  Regex rules are never extended.

    Returns:
        The rule holding the new hunk.
    """
    ignored = hunk.model_copy(deep=True)
    for rule in rules:
        if (
            rule.hunks is not None
            and rule.repository_name == repository_name
            and rule.file_name == file_name
        ):
            rule.hunks.append(ignored)
            return rule

    rule = IgnoreRule(
        repository_name=repository_name, file_name=file_name, hunks=[ignored]
    )
    rules.append(rule)
    logger.info("%s: added ignore rule for %s", repository_name, file_name)
    return rule
