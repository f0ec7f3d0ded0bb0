"""Text formatters for rows."""

from __future__ import annotations

from cabinet_rows.contracts.dtos import RowSnapshot
from cabinet_rows.domain.value_objects import HighlightGeometry


def _mm(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}"


class RowListFormatter:
    """Formats a summary table of all rows."""

    def format(self, rows: list[RowSnapshot]) -> str:
        if not rows:
            return "No rows defined."

        lines = [
            "ROWS",
            "=" * 78,
            f"{'Row ID':<38} {'Members':>7} {'Reveal':>8} {'Span':>10} {'Lock':>10}",
            "-" * 78,
        ]
        for row in rows:
            lock = _mm(row.total_length_mm) if row.lock_total_length else "off"
            lines.append(
                f"{row.row_id:<38} {len(row.members):>7} {_mm(row.row_reveal_mm):>8} "
                f"{_mm(row.total_span_mm):>10} {lock:>10}"
            )
        lines.append("=" * 78)
        lines.append(f"Total rows: {len(rows)}")
        return "\n".join(lines)


class RowDetailFormatter:
    """Formats one row: settings, members and boundary gaps."""

    def format(self, row: RowSnapshot | None) -> str:
        if row is None:
            return "No row to display."

        lines = [
            f"ROW {row.row_id}",
            "=" * 70,
            f"Reveal: {_mm(row.row_reveal_mm)} mm",
            f"Span: {_mm(row.total_span_mm)} mm (origin {_mm(row.origin_mm)} mm)",
        ]
        if row.lock_total_length:
            lines.append(f"Length lock: {_mm(row.total_length_mm)} mm")
        else:
            lines.append("Length lock: off")
        lines.extend(
            [
                "",
                f"{'Pos':>3}  {'ID':>6}  {'Definition':<12} {'Start':>10} {'Width':>10} {'End':>10}  Reveal",
                "-" * 70,
            ]
        )
        for member in row.members:
            reveal = "row" if member.use_row_reveal else "legacy"
            lines.append(
                f"{member.row_pos:>3}  {member.persistent_id:>6}  {member.definition_id:<12} "
                f"{_mm(member.position_mm):>10} {_mm(member.width_mm):>10} "
                f"{_mm(member.end_mm):>10}  {reveal}"
            )
        lines.append("")
        gaps = ", ".join(
            f"{_mm(gap)} ({kind})" for gap, kind in zip(row.gaps_mm, row.gap_kinds)
        )
        lines.append(f"Gaps: {gaps}")
        return "\n".join(lines)


class RowDiagramFormatter:
    """Formats a one-line ASCII strip of a row, scaled to ``width`` characters."""

    def format(self, row: RowSnapshot | None, width: int = 70) -> str:
        if row is None or not row.members or row.total_span_mm <= 0:
            return "No row to display."

        scale = (width - 2) / row.total_span_mm
        strip = [" "] * (width - 2)
        for member in row.members:
            start = int(round((member.position_mm - row.origin_mm) * scale))
            end = int(round((member.end_mm - row.origin_mm) * scale))
            end = max(end, start + 1)
            for x in range(max(start, 0), min(end, width - 2)):
                strip[x] = "#"
            label = str(member.row_pos)
            middle = (start + end) // 2
            if 0 <= middle < width - 2 and end - start > len(label):
                for offset, char in enumerate(label):
                    if middle + offset < width - 2:
                        strip[middle + offset] = char

        lines = [
            "ROW DIAGRAM",
            "=" * width,
            "|" + "".join(strip) + "|",
            f"0{'':>{width - 2 - len(_mm(row.total_span_mm))}}{_mm(row.total_span_mm)} mm",
        ]
        return "\n".join(lines)


class HighlightFormatter:
    """Formats highlight geometry as a list of outline points."""

    def format(self, geometry: HighlightGeometry | None) -> str:
        if geometry is None or geometry.is_empty:
            return "Highlight hidden."

        lines = [f"HIGHLIGHT {geometry.row_id}", "Outline:"]
        for point in geometry.polyline:
            lines.append(f"  ({_mm(point.x)}, {_mm(point.y)}, {_mm(point.z)})")
        lines.append(f"Origin marker segments: {len(geometry.origin_segments) // 2}")
        return "\n".join(lines)
