"""signforge CLI — Typer-based command-line interface.

Provides the ``signforge`` command with subcommands for deploying function
folders, listing them, and checking which are out of date.

All output uses Rich for formatted terminal display.
"""
