"""Configuration schema for the row engine.

Example file::

    {
        "schema_version": "1.0",
        "rows": {
            "default_row_reveal_mm": 3.0,
            "min_member_width_mm": 50.0,
            "auto_select_row": true
        }
    }
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cabinet_rows.domain.value_objects import (
    COLLINEAR_TOLERANCE_MM,
    DEFAULT_ROW_REVEAL_MM,
    LEGACY_EDGE_REVEAL_MM,
    MIN_MEMBER_WIDTH_MM,
)

# Supported schema versions for configuration files
# Version 1.0: Initial row engine settings
SUPPORTED_VERSIONS: frozenset[str] = frozenset({"1.0"})


class RowSettingsConfig(BaseModel):
    """Tunable constants of the row engine.

    Attributes:
        default_row_reveal_mm: Reveal given to newly created rows.
        legacy_edge_reveal_mm: Gap used at boundaries touching a member that
            opted out of the row reveal.
        min_member_width_mm: Smallest width the filler may shrink to while
            the row length is locked.
        collinear_tolerance_mm: Maximum cross-axis spread of a selection
            that forms a row.
        auto_select_row: Expand single-member selections to the whole row.
    """

    model_config = ConfigDict(extra="forbid")

    default_row_reveal_mm: float = Field(default=DEFAULT_ROW_REVEAL_MM, ge=0.0)
    legacy_edge_reveal_mm: float = Field(default=LEGACY_EDGE_REVEAL_MM, ge=0.0)
    min_member_width_mm: float = Field(default=MIN_MEMBER_WIDTH_MM, gt=0.0)
    collinear_tolerance_mm: float = Field(default=COLLINEAR_TOLERANCE_MM, ge=0.0)
    auto_select_row: bool = False


class RowsConfiguration(BaseModel):
    """Root configuration model.

    Attributes:
        schema_version: Version string in format "major.minor" (e.g., "1.0")
        rows: Row engine settings
    """

    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field(default="1.0", pattern=r"^\d+\.\d+$")
    rows: RowSettingsConfig = Field(default_factory=RowSettingsConfig)

    @field_validator("schema_version")
    @classmethod
    def validate_supported_version(cls, v: str) -> str:
        """Accept supported versions and newer minor versions of a supported major."""
        if v in SUPPORTED_VERSIONS:
            return v

        major_version = int(v.split(".")[0])
        supported_majors = {int(sv.split(".")[0]) for sv in SUPPORTED_VERSIONS}
        if major_version in supported_majors:
            return v

        raise ValueError(
            f"Unsupported schema version '{v}'. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}"
        )
