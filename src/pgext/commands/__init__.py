"""Command implementations for the pgext CLI."""
