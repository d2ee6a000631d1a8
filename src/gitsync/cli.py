"""Command-line entry point for gitsync."""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from gitsync import __version__
from gitsync.config_loader import load_config, save_config
from gitsync.errors import GitsyncError
from gitsync.logger import setup_logging
from gitsync.sync.engine import SyncEngine
from gitsync.sync.models import SyncCommand
from gitsync.sync.reporter import format_sync_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gitsync",
        description="Keep files of a root repository in sync across repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview differences between the root and every synced repository
  gitsync diff

  # Review hunks one by one, apply them and open pull requests
  gitsync -c ./gitsync.json sync

  # Apply every non-ignored hunk without prompting
  gitsync sync --no-prompt

Ignore rules added with 'i' during review are saved to the config file
after a successful sync.
        """,
    )
    parser.add_argument(
        "command",
        choices=[c.value for c in SyncCommand],
        help="'sync' applies accepted changes, 'diff' only previews them",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        help="Path to the configuration file (default: GITSYNC_CONFIG or "
        "$XDG_CONFIG_HOME/gitsync/config.json)",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Accept every non-ignored hunk without asking (sync only)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (overrides LOG_LEVEL)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gitsync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run gitsync and return the process exit status."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    setup_logging(
        debug=args.debug, log_file=args.log_file, debug_format=args.log_format
    )

    command = SyncCommand(args.command)
    try:
        config, config_path = load_config(args.config)
        engine = SyncEngine(config, command, interactive=not args.no_prompt)
        report = engine.run()
        if command is SyncCommand.SYNC:
            save_config(config, config_path)
    except GitsyncError as exc:
        logger.debug("Run failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(format_sync_report(report), file=sys.stderr)
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
