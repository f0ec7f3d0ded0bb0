"""Reveal calculator: start offsets that keep every row boundary uniform.

A row of N members has N + 1 boundaries: the left row end, N - 1 interior
gaps and the right row end. Each boundary gets the row's configured
reveal, unless a member touching it has opted out of the row reveal, in
which case that boundary falls back to the fixed legacy edge reveal.
Member widths are never changed here; only start offsets are derived.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..value_objects import (
    DEFAULT_ROW_REVEAL_MM,
    LEGACY_EDGE_REVEAL_MM,
    BoundaryGap,
    BoundaryKind,
    MemberExtent,
    RowLayout,
)


class RevealCalculator:
    """Computes member start offsets along the row axis.

    The calculation is pure: the same members, order and reveal settings
    always produce the same offsets, measured from the row origin.

    Example:
        ```python
        calculator = RevealCalculator()
        layout = calculator.compute_layout(
            [MemberExtent(1, 600.0), MemberExtent(2, 400.0)], row_reveal_mm=3.0
        )
        layout.offsets_mm  # (3.0, 606.0)
        layout.total_span_mm  # 1009.0
        ```
    """

    def __init__(self, legacy_edge_reveal_mm: float = LEGACY_EDGE_REVEAL_MM) -> None:
        if not math.isfinite(legacy_edge_reveal_mm) or legacy_edge_reveal_mm < 0:
            raise ValueError("legacy_edge_reveal_mm must be a non-negative number")
        self.legacy_edge_reveal_mm = legacy_edge_reveal_mm

    def compute_offsets(
        self, members: Sequence[MemberExtent], row_reveal_mm: float
    ) -> list[float]:
        """Start offset of every member, in row order."""
        return list(self.compute_layout(members, row_reveal_mm).offsets_mm)

    def compute_layout(
        self, members: Sequence[MemberExtent], row_reveal_mm: float
    ) -> RowLayout:
        """Compute offsets, boundary gaps and the total span of a row.

        Args:
            members: Member extents in row order.
            row_reveal_mm: Configured row reveal. Negative values are
                treated as 0; non-finite values fall back to the default.

        Returns:
            RowLayout with one offset per member and len(members) + 1 gaps.
        """
        if not members:
            return RowLayout()

        reveal = self._normalize_reveal(row_reveal_mm)
        gaps = self.boundary_gaps(members, reveal)

        offsets: list[float] = []
        cursor = 0.0
        for member, gap in zip(members, gaps):
            cursor += gap.gap_mm
            offsets.append(cursor)
            cursor += member.width_mm
        cursor += gaps[-1].gap_mm

        return RowLayout(
            offsets_mm=tuple(offsets),
            gaps=tuple(gaps),
            total_span_mm=cursor,
        )

    def boundary_gaps(
        self, members: Sequence[MemberExtent], row_reveal_mm: float
    ) -> list[BoundaryGap]:
        """Gap at each boundary, left row end first."""
        gaps: list[BoundaryGap] = []
        for index in range(len(members) + 1):
            left = members[index - 1] if index > 0 else None
            right = members[index] if index < len(members) else None
            touching = [member for member in (left, right) if member is not None]
            if all(member.use_row_reveal for member in touching):
                gaps.append(BoundaryGap(index, row_reveal_mm, BoundaryKind.ROW_REVEAL))
            else:
                gaps.append(
                    BoundaryGap(index, self.legacy_edge_reveal_mm, BoundaryKind.LEGACY)
                )
        return gaps

    @staticmethod
    def _normalize_reveal(value: float) -> float:
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            return DEFAULT_ROW_REVEAL_MM
        if not math.isfinite(numeric):
            return DEFAULT_ROW_REVEAL_MM
        return max(numeric, 0.0)
