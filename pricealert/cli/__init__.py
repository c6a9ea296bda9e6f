"""CLI commands for pricealert.

This package provides the command-line interface for pricealert,
including the monitor host and alert and trigger inspection commands.
"""

from pricealert.cli.main import cli, main

__all__ = ["cli", "main"]
