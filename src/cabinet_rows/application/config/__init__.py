"""Configuration schema and loading for the row engine.

Public API:
    - RowsConfiguration: Root configuration model
    - RowSettingsConfig: Row engine settings
    - load_config: Load configuration from a JSON file
    - load_config_from_dict: Validate an already-parsed configuration
    - merge_config_with_cli: Apply CLI overrides
    - ConfigError: Exception for configuration errors
"""

from cabinet_rows.application.config.loader import (
    ConfigError,
    load_config,
    load_config_from_dict,
)
from cabinet_rows.application.config.merger import merge_config_with_cli
from cabinet_rows.application.config.schema import (
    SUPPORTED_VERSIONS,
    RowsConfiguration,
    RowSettingsConfig,
)

__all__ = [
    "ConfigError",
    "RowSettingsConfig",
    "RowsConfiguration",
    "SUPPORTED_VERSIONS",
    "load_config",
    "load_config_from_dict",
    "merge_config_with_cli",
]
