"""Unified diff model for GNU ``diff -U 0`` output.

Parses the (possibly colorized) output of ``diff`` into a header and an
ordered list of hunks, and renders a subset of those hunks back into
patch text that ``patch --unified`` accepts.

Only the changed lines of each hunk are kept, since the diff is always
produced with zero lines of context.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer

from gitsync.errors import ParseError

# ESC[<n>m ... ESC[<n>m wrapping a span, as emitted by ``diff --color=always``
_COLOR_CODE_RE = re.compile(r"\x1b\[\d+m(?P<content>.*)\x1b\[\d+m")


def strip_color_codes(line: str) -> str:
    """Remove terminal color escapes wrapping a span of *line*."""
    return _COLOR_CODE_RE.sub(r"\g<content>", line)


class Hunk(BaseModel):
    """A single hunk of a unified diff.

    Attributes:
        range_header: The ``@@ -a,b +c,d @@`` line.  Persisted as
            ``lines``; may be empty in ignore rules written by hand.
        changes: Changed lines, each still prefixed with its marker.
        original: Verbatim hunk text including color codes, for display.
    """

    range_header: str = Field(default="", alias="lines")
    changes: list[str] = Field(default_factory=list)
    original: str = Field(default="", exclude=True)

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    @model_serializer(mode="wrap")
    def _omit_empty_range_header(
        self, handler: SerializerFunctionWrapHandler
    ) -> dict[str, Any]:
        data = handler(self)
        if not self.range_header:
            data.pop("lines", None)
            data.pop("range_header", None)
        return data

    def matches(self, other: Hunk) -> bool:
        """Compare hunks, ignoring color codes.

        The range headers are compared only if this hunk has one, so a
        hunk without line numbers matches the same change anywhere in
        the file.  The relation is therefore not symmetric.
        """
        if self.range_header and self.range_header != other.range_header:
            return False
        return self.changes == other.changes

    def render(self) -> str:
        """Return the canonical patch text of this hunk."""
        return "".join(f"{line}\n" for line in [self.range_header, *self.changes])


class UnifiedDiff(BaseModel):
    """Header plus ordered hunks of a single-file unified diff.

    Attributes:
        header: The ``---`` and ``+++`` lines joined by a newline.
        hunks: Hunks in file order.
    """

    header: str = ""
    hunks: list[Hunk] = Field(default_factory=list)

    model_config = {"frozen": True}

    def with_hunks(self, hunks: list[Hunk]) -> UnifiedDiff:
        """Return a copy of this diff restricted to *hunks*."""
        return self.model_copy(update={"hunks": list(hunks)})

    def render(self, original: bool = False) -> str:
        """Render the diff as text.

        Args:
            original: If ``True``, emit each hunk verbatim with its color
                codes (preview only).  Otherwise emit the canonical form
                fed to ``patch``.
        """
        parts = [self.header, "\n"]
        for hunk in self.hunks:
            parts.append(hunk.original if original else hunk.render())
        return "".join(parts)


def _iter_lines(text: str) -> Iterator[str]:
    """Split on ``\\n`` only, dropping a trailing ``\\r`` from each line."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line.removesuffix("\r")


def parse_diff_output(output: str | bytes) -> UnifiedDiff:
    """Parse ``diff`` output into a ``UnifiedDiff``.

    Args:
        output: Raw unified diff text; bytes are decoded as UTF-8.

    Returns:
        The parsed diff.  Empty input yields a diff with no hunks.

    Raises:
        ParseError: If a change line appears before any hunk header.
    """
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="surrogateescape")

    header = ""
    # [range_header, changes, original lines] per hunk, frozen at the end
    pending: list[tuple[str, list[str], list[str]]] = []

    for original_line in _iter_lines(output):
        line = strip_color_codes(original_line)
        # Once a hunk is open, "---"/"+++" are removed or added lines
        if not pending and line.startswith("---"):
            header += line + "\n"
        elif not pending and line.startswith("+++"):
            header += line
        elif line.startswith("@@"):
            pending.append((line, [], [original_line + "\n"]))
        else:
            if not pending:
                raise ParseError(
                    "invalid diff output, missing hunk header before line: "
                    f"{line!r}"
                )
            _, changes, original = pending[-1]
            changes.append(line)
            original.append(original_line + "\n")

    hunks = [
        Hunk(range_header=range_header, changes=changes, original="".join(original))
        for range_header, changes, original in pending
    ]
    return UnifiedDiff(header=header, hunks=hunks)
