"""Validate command for checking row engine configuration files."""

from pathlib import Path
from typing import Annotated

import typer

from cabinet_rows.application.config import ConfigError, load_config


def validate_command(
    config_file: Annotated[
        Path,
        typer.Argument(help="Path to the JSON configuration file to validate"),
    ],
) -> None:
    """Validate a row engine configuration file.

    Exit codes:
        0 - Configuration is valid
        1 - Configuration has errors (cannot be used)

    Example:
        cabinet-rows validate-config rows.json
    """
    typer.echo(f"Validating {config_file}...")
    typer.echo()

    try:
        config = load_config(config_file)
    except ConfigError as e:
        _display_load_error(e)
        raise typer.Exit(code=1)

    settings = config.rows
    typer.echo("Configuration is valid.")
    typer.echo(f"  Default row reveal: {settings.default_row_reveal_mm} mm")
    typer.echo(f"  Legacy edge reveal: {settings.legacy_edge_reveal_mm} mm")
    typer.echo(f"  Minimum member width: {settings.min_member_width_mm} mm")
    typer.echo(f"  Collinear tolerance: {settings.collinear_tolerance_mm} mm")
    typer.echo(f"  Auto-select row: {'on' if settings.auto_select_row else 'off'}")


def _display_load_error(error: ConfigError) -> None:
    """Display a configuration loading error."""
    typer.echo("Errors:", err=True)
    if error.error_type == "file_not_found":
        typer.echo(f"  File not found: {error.path}", err=True)
    elif error.error_type == "json_parse":
        typer.echo("  Invalid JSON syntax", err=True)
        for detail in error.details:
            line = detail.get("line", "?")
            column = detail.get("column", "?")
            message = detail.get("message", "Unknown error")
            typer.echo(f"    Line {line}, Column {column}: {message}", err=True)
    elif error.error_type == "validation":
        for detail in error.details:
            path = detail.get("path", "unknown")
            message = detail.get("message", "Unknown error")
            value = detail.get("value")
            if value is not None:
                typer.echo(f"  {path}: {message} (got: {value!r})", err=True)
            else:
                typer.echo(f"  {path}: {message}", err=True)
    else:
        typer.echo(f"  {error.message}", err=True)
