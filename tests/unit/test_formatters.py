"""Unit tests for row text formatters."""

from cabinet_rows.infrastructure import (
    HighlightFormatter,
    RowDetailFormatter,
    RowDiagramFormatter,
    RowListFormatter,
)


class TestRowFormatters:
    """Tests for list, detail and diagram output."""

    def test_empty_list(self) -> None:
        assert RowListFormatter().format([]) == "No rows defined."

    def test_list(self, factory, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0, 800.0])
        rows = factory.create_query_command().list_rows().rows

        output = RowListFormatter().format(rows)

        assert row_id in output
        assert "1808.0" in output
        assert "Total rows: 1" in output

    def test_detail(self, factory, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0], lock_total_length=True)
        row = factory.create_query_command().get_row(row_id).row

        output = RowDetailFormatter().format(row)

        assert f"ROW {row_id}" in output
        assert "Length lock: 1006.0 mm" in output
        assert "Gaps: 2.0 (row_reveal), 2.0 (row_reveal), 2.0 (row_reveal)" in output

    def test_detail_none(self) -> None:
        assert RowDetailFormatter().format(None) == "No row to display."

    def test_diagram(self, factory, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0, 800.0])
        row = factory.create_query_command().get_row(row_id).row

        output = RowDiagramFormatter().format(row, width=40)
        strip = output.splitlines()[2]

        assert strip.startswith("|") and strip.endswith("|")
        assert len(strip) == 40
        assert "#" in strip

    def test_highlight_hidden(self) -> None:
        assert HighlightFormatter().format(None) == "Highlight hidden."

    def test_highlight(self, factory, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0])
        geometry = factory.create_query_command().highlight(row_id).highlight

        output = HighlightFormatter().format(geometry)

        assert "(2.0, 0.0, 0.0)" in output
        assert "Origin marker segments: 3" in output
