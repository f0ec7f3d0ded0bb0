"""Shared DTOs for communication between application and infrastructure."""

from __future__ import annotations

from dataclasses import dataclass, field

from cabinet_rows.domain.value_objects import HighlightGeometry


@dataclass(frozen=True)
class MemberSnapshot:
    """Read-only view of one row member."""

    persistent_id: int
    row_pos: int
    definition_id: str
    width_mm: float
    position_mm: float
    use_row_reveal: bool = True

    @property
    def end_mm(self) -> float:
        return self.position_mm + self.width_mm


@dataclass(frozen=True)
class RowSnapshot:
    """Read-only view of a row, its live members and their boundary gaps.

    Attributes:
        gaps_mm: Gap at every boundary, left row end first. Interior gaps
            are measured between neighbouring members. The two end gaps are
            taken against the origin derived from this same layout, so they
            always equal the computed end gaps; compare ``origin_mm`` with a
            value recorded earlier to check that a row end has not moved.
        gap_kinds: Rule that applies at each boundary ("row_reveal" or "legacy").
    """

    row_id: str
    row_reveal_mm: float
    lock_total_length: bool
    total_length_mm: float | None
    total_span_mm: float
    origin_mm: float
    members: tuple[MemberSnapshot, ...] = field(default_factory=tuple)
    gaps_mm: tuple[float, ...] = field(default_factory=tuple)
    gap_kinds: tuple[str, ...] = field(default_factory=tuple)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def member_ids(self) -> list[int]:
        return [member.persistent_id for member in self.members]

    @property
    def widths_mm(self) -> list[float]:
        return [member.width_mm for member in self.members]

    @property
    def positions_mm(self) -> list[float]:
        return [member.position_mm for member in self.members]


@dataclass
class RowOperationOutput:
    """Result of an application command.

    ``errors`` is empty on success. ``error_code`` carries the machine-readable
    reason of the first error when the engine reported one.
    """

    row: RowSnapshot | None = None
    rows: list[RowSnapshot] = field(default_factory=list)
    row_id: str | None = None
    highlight: HighlightGeometry | None = None
    selection_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error_code: str | None = None

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0
