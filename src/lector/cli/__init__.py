"""Command-line interface for lector."""
