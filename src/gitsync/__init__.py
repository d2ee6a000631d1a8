"""gitsync: keep files from a root repository in sync across repositories."""

__version__ = "0.1.0"
