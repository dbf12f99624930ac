"""Command-line interface for relcourse."""
