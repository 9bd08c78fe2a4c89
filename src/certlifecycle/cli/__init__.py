"""Command-line interface for certlifecycle."""
