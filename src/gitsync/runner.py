"""External command execution.

All git, gh, diff and patch invocations go through ``CommandRunner`` so
that tests can substitute a fake and so failures are reported uniformly
as ``CommandError`` with the captured stderr.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping

from gitsync.errors import CommandError, DependencyError

logger = logging.getLogger(__name__)

# Executable -> human readable requirement
_REQUIRED = {
    "git": "'git' is required to be installed",
    "diff": "'diff' (GNU) is required to be installed",
}
_REQUIRED_FOR_SYNC = {
    "gh": "'gh' (GitHub CLI) is required to be installed",
    "patch": "'patch' (GNU) is required to be installed",
}


class CommandRunner:
    """Run external commands with captured output."""

    def run(
        self,
        name: str,
        *args: str,
        stdin: str | None = None,
        ok_statuses: Iterable[int] = (),
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Execute a command and return its standard output.

        Args:
            name: Executable name, looked up on ``PATH``.
            *args: Command arguments.
            stdin: Text fed to the command's standard input.
            ok_statuses: Non-zero exit statuses that still count as
                success (``diff`` exits with 1 when files differ).
            env: Extra environment variables layered over ``os.environ``.

        Returns:
            Captured standard output.

        Raises:
            CommandError: If the command cannot be started or exits with
                a status not in *ok_statuses*.
        """
        command = [name, *args]
        logger.debug("Running: %s", " ".join(command))

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            result = subprocess.run(
                command,
                input=stdin,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                env=full_env,
                check=False,
            )
        except OSError as exc:
            raise CommandError(command, str(exc)) from exc

        if result.returncode != 0 and result.returncode not in set(ok_statuses):
            raise CommandError(command, result.stderr, result.returncode)
        return result.stdout


def check_dependencies(runner: CommandRunner, sync: bool = True) -> None:
    """Verify the external tools needed for a run are installed.

    Args:
        runner: Runner used to probe ``<tool> --version``.
        sync: Also require ``gh`` and ``patch``.

    Raises:
        DependencyError: For the first missing tool.
    """
    required = dict(_REQUIRED)
    if sync:
        required.update(_REQUIRED_FOR_SYNC)
    for tool, message in required.items():
        try:
            runner.run(tool, "--version")
        except CommandError as exc:
            raise DependencyError(message) from exc
