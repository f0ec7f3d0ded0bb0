"""Configuration merging utilities for CLI override support.

Precedence: CLI args > config values > defaults. Only non-None CLI
arguments override configuration values.
"""

from typing import Any

from cabinet_rows.application.config.schema import RowSettingsConfig, RowsConfiguration


def merge_config_with_cli(
    config: RowsConfiguration,
    *,
    default_row_reveal_mm: float | None = None,
    legacy_edge_reveal_mm: float | None = None,
    min_member_width_mm: float | None = None,
    collinear_tolerance_mm: float | None = None,
    auto_select_row: bool | None = None,
) -> RowsConfiguration:
    """Merge CLI arguments with configuration values.

    Returns:
        A new RowsConfiguration with merged values.

    Example:
        >>> merged = merge_config_with_cli(RowsConfiguration(), default_row_reveal_mm=3.0)
        >>> merged.rows.default_row_reveal_mm
        3.0
    """
    overrides: dict[str, Any] = {
        "default_row_reveal_mm": default_row_reveal_mm,
        "legacy_edge_reveal_mm": legacy_edge_reveal_mm,
        "min_member_width_mm": min_member_width_mm,
        "collinear_tolerance_mm": collinear_tolerance_mm,
        "auto_select_row": auto_select_row,
    }
    rows_data = config.rows.model_dump()
    rows_data.update({key: value for key, value in overrides.items() if value is not None})

    return RowsConfiguration(
        schema_version=config.schema_version,
        rows=RowSettingsConfig.model_validate(rows_data),
    )
