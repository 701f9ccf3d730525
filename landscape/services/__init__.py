"""Command-surface services."""
