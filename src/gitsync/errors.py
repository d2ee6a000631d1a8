"""Exception hierarchy for gitsync.

Every error raised on purpose by the package derives from
``GitsyncError`` so the CLI can report it without a traceback.
"""

from __future__ import annotations

from collections.abc import Sequence


class GitsyncError(Exception):
    """Base class for all gitsync errors."""


class ParseError(GitsyncError):
    """Raised when diff output is not valid unified diff text."""


class InvalidRuleError(GitsyncError, ValueError):
    """Raised when an ignore rule has no payload or more than one kind.

    Also a ``ValueError`` so pydantic validators report it as a
    validation error.
    """


class ConfigError(GitsyncError):
    """Raised when the configuration file cannot be read, parsed or validated."""


class DependencyError(GitsyncError):
    """Raised when a required executable is not installed."""


class ReviewAbortedError(GitsyncError):
    """Raised when the operator input stream closes mid-review."""


class SyncError(GitsyncError):
    """Wraps a failure with the repository (and file) it happened for."""


class CommandError(GitsyncError):
    """Raised when an external command fails.

    Attributes:
        command: The full argument list that was executed.
        returncode: Exit status, or ``None`` if the process never started.
        stderr: Captured standard error text.
    """

    def __init__(
        self,
        command: Sequence[str],
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"failed to execute '{' '.join(self.command)}' command"
        if returncode is not None:
            message += f" (exit status {returncode})"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)
