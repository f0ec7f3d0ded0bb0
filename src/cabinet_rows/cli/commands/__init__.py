"""CLI command implementations for the cabinet-rows application.

This package contains subcommands for the cabinet-rows CLI, including:
- validate-config: Validate a settings file
"""

from cabinet_rows.cli.commands.validate import validate_command

__all__ = ["validate_command"]
