"""Interactive per-hunk review.

``HunkReviewer`` shows one hunk at a time and reads a single-line
decision from the operator; it blocks until a valid answer is given.
``review_hunks`` folds those decisions into the accepted hunk list and,
for ``i``, into the ignore rules.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import TextIO

from gitsync.config_schema import IgnoreRule, Repository, SyncFile
from gitsync.diff import Hunk
from gitsync.errors import ReviewAbortedError
from gitsync.sync.ignore import add_hunk_ignore_rule

logger = logging.getLogger(__name__)

PROMPT_MESSAGE = "Accept hunk? [Y|y|n|i|h]: "

INVALID_INPUT_MESSAGE = (
    "Invalid input. Please enter Y (all), y (yes), n (no), i (ignore), or h (help)."
)

_HELP_TEMPLATE = """\
Enter one of the following characters:
  - Y (accept all hunks for {file_path} - applies only to {repository_url} repository)
  - y (accept the hunk)
  - n (reject the hunk)
  - i (ignore the hunk permanently, an ignore rule will be added to your config file)
  - h (display this help message)
"""


class ReviewDecision(str, Enum):
    """Operator decision for one hunk."""

    ACCEPT = "accept"
    ACCEPT_ALL = "accept_all"
    REJECT = "reject"
    IGNORE = "ignore"


_ANSWERS: dict[str, ReviewDecision] = {
    "Y": ReviewDecision.ACCEPT_ALL,
    "y": ReviewDecision.ACCEPT,
    "yes": ReviewDecision.ACCEPT,
    "n": ReviewDecision.REJECT,
    "no": ReviewDecision.REJECT,
    "i": ReviewDecision.IGNORE,
}


def separator_line(lines: list[str]) -> str:
    """Return a rule of ``=`` as wide as the longest of *lines*."""
    return "=" * max((len(line) for line in lines), default=0)


class HunkReviewer:
    """Prompt the operator for hunk decisions.

    Args:
        input_stream: Where answers are read from (default ``sys.stdin``).
        output_stream: Where hunks and prompts are written
            (default ``sys.stdout``).
    """

    def __init__(
        self,
        input_stream: TextIO | None = None,
        output_stream: TextIO | None = None,
    ) -> None:
        self.input_stream = input_stream or sys.stdin
        self.output_stream = output_stream or sys.stdout

    def _write(self, text: str) -> None:
        self.output_stream.write(text)
        self.output_stream.flush()

    def show(self, hunk: Hunk, header: str) -> None:
        """Print the diff header and the colored hunk between separators."""
        sep = separator_line([*hunk.changes, *header.split("\n")])
        self._write(f"{sep}\n{header}\n{hunk.original}{sep}\n")

    def prompt(
        self,
        hunk: Hunk,
        header: str,
        *,
        file_path: str,
        repository_url: str,
    ) -> ReviewDecision:
        """Show *hunk* and block until the operator decides.

        Raises:
            ReviewAbortedError: If the input stream is closed.
        """
        self.show(hunk, header)
        while True:
            self._write(PROMPT_MESSAGE)
            line = self.input_stream.readline()
            if not line:
                raise ReviewAbortedError(
                    "input stream closed while waiting for a hunk decision"
                )
            answer = line.rstrip("\r\n")
            decision = _ANSWERS.get(answer)
            if decision is not None:
                return decision
            if answer == "h":
                self._write(
                    _HELP_TEMPLATE.format(
                        file_path=file_path, repository_url=repository_url
                    )
                )
            else:
                self._write(INVALID_INPUT_MESSAGE + "\n")


def review_hunks(
    hunks: list[Hunk],
    header: str,
    *,
    rules: list[IgnoreRule],
    repository: Repository,
    sync_file: SyncFile,
    reviewer: HunkReviewer,
) -> list[Hunk]:
    """Ask the operator about each hunk of one repository file.

    ``Y`` accepts the current hunk and every remaining hunk of this file
    without further prompts; the next file is prompted again.  ``i``
    rejects the hunk and records it in *rules*.

    Returns:
        Accepted hunks in their original order.
    """
    accepted: list[Hunk] = []
    auto_accept = False
    for hunk in hunks:
        if auto_accept:
            accepted.append(hunk)
            continue

        decision = reviewer.prompt(
            hunk,
            header,
            file_path=sync_file.path,
            repository_url=repository.url,
        )
        if decision is ReviewDecision.ACCEPT_ALL:
            accepted.append(hunk)
            auto_accept = True
        elif decision is ReviewDecision.ACCEPT:
            accepted.append(hunk)
        elif decision is ReviewDecision.IGNORE:
            add_hunk_ignore_rule(rules, repository.name, sync_file.name, hunk)
        else:
            logger.debug("%s: rejected hunk %s", repository.name, hunk.range_header)
    return accepted
