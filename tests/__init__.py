"""gitsync test suite."""
