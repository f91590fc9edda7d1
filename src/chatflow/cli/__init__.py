"""Command line interface for chatflow."""
