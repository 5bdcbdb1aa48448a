"""CLI commands for shelby."""
