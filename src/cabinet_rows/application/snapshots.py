"""Build read-only row snapshots for commands and formatters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cabinet_rows.contracts.dtos import MemberSnapshot, RowSnapshot
from cabinet_rows.domain.services.placement import member_extents, row_origin

if TYPE_CHECKING:
    from cabinet_rows.domain.entities import Row
    from cabinet_rows.domain.services import RevealCalculator, RowRegistry


class RowSnapshotBuilder:
    """Measures a row's live members against its reveal layout."""

    def __init__(self, registry: RowRegistry, calculator: RevealCalculator) -> None:
        self.registry = registry
        self.calculator = calculator

    def build(self, row: Row) -> RowSnapshot:
        members = self.registry.resolve_members(row)
        extents = member_extents(members)
        layout = self.calculator.compute_layout(extents, row.row_reveal_mm)
        origin = row_origin(members, layout)

        snapshots = tuple(
            MemberSnapshot(
                persistent_id=member.persistent_id,
                row_pos=index,
                definition_id=member.definition_id,
                width_mm=extent.width_mm,
                position_mm=member.position_along_axis(),
                use_row_reveal=extent.use_row_reveal,
            )
            for index, (member, extent) in enumerate(zip(members, extents), start=1)
        )

        gaps: list[float] = []
        if snapshots:
            gaps.append(snapshots[0].position_mm - origin)
            for previous, current in zip(snapshots, snapshots[1:]):
                gaps.append(current.position_mm - previous.end_mm)
            gaps.append(origin + layout.total_span_mm - snapshots[-1].end_mm)

        return RowSnapshot(
            row_id=row.row_id,
            row_reveal_mm=row.row_reveal_mm,
            lock_total_length=row.lock_total_length,
            total_length_mm=row.total_length_mm,
            total_span_mm=layout.total_span_mm,
            origin_mm=origin,
            members=snapshots,
            gaps_mm=tuple(gaps),
            gap_kinds=tuple(gap.kind.value for gap in layout.gaps),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
