"""Unit tests for the reflow engine.

These tests verify:
- Downstream members shift by the upstream width delta
- all_instances scope resizes every member sharing the definition
- Locked rows keep their span by resizing the filler
- Failed reflows leave the model untouched
- A reflow is a single undo step
"""

import pytest

from cabinet_rows.domain.errors import RowError
from cabinet_rows.domain.services import normalize_scope
from cabinet_rows.domain.services.reflow import OPERATION_NAME, coerce_positive_width
from cabinet_rows.domain.value_objects import ReflowScope
from cabinet_rows.infrastructure import PlacedCabinet


def positions(cabinets) -> list[float]:
    return [cabinet.position_along_axis() for cabinet in cabinets]


def widths(cabinets) -> list[float]:
    return [cabinet.width_along_axis() for cabinet in cabinets]


class TestApplyWidthChange:
    """Tests for unlocked rows."""

    def test_growing_member_pushes_downstream(self, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])
        before = positions([a, b, c])

        reflow.apply_width_change(b, 450.0)

        assert widths([a, b, c]) == [600.0, 450.0, 800.0]
        assert positions([a, b, c]) == [before[0], before[1], before[2] + 50.0]

    def test_shrinking_member_pulls_downstream(self, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])
        before = positions([a, b, c])

        reflow.apply_width_change(b, 350.0)

        assert positions([a, b, c]) == [before[0], before[1], before[2] - 50.0]

    def test_first_member_change_shifts_all_others(self, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])

        reflow.apply_width_change(a, 620.0)

        assert positions([a, b, c]) == [2.0, 624.0, 1026.0]

    def test_gaps_stay_uniform(self, reflow, factory, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0], row_reveal_mm=3.0)
        builder = factory.get_snapshot_builder()
        before = builder.build(factory.get_registry().get_row(row_id))

        reflow.apply_width_change(b, 455.5)

        after = builder.build(factory.get_registry().get_row(row_id))
        assert after.gaps_mm[1:-1] == pytest.approx((3.0, 3.0))
        assert after.origin_mm == pytest.approx(before.origin_mm)
        assert a.position_along_axis() - before.origin_mm == pytest.approx(3.0)
        row_end = before.origin_mm + before.total_span_mm + 55.5
        assert row_end - (c.position_along_axis() + 800.0) == pytest.approx(3.0)

    def test_instance_only_makes_member_unique(self, model, reflow, make_row) -> None:
        _, (a, b, c, d) = make_row(
            [600.0, 400.0, 600.0, 700.0], definitions=["A", "B", "A", "D"]
        )
        shared = a.definition_id

        reflow.apply_width_change(a, 630.0, ReflowScope.INSTANCE_ONLY)

        assert a.definition_id != shared
        assert c.definition_id == shared
        assert widths([a, b, c, d]) == [630.0, 400.0, 600.0, 700.0]
        assert positions([a, b, c, d]) == [2.0, 634.0, 1036.0, 1638.0]

    def test_all_instances_resizes_shared_definition(self, reflow, make_row) -> None:
        _, (a, b, c, d) = make_row(
            [600.0, 400.0, 600.0, 700.0], definitions=["A", "B", "A", "D"]
        )
        before = positions([a, b, c, d])

        reflow.apply_width_change(a, 630.0, "all_instances")

        assert widths([a, b, c, d]) == [630.0, 400.0, 630.0, 700.0]
        assert positions([a, b, c, d]) == [
            before[0],
            before[1] + 30.0,
            before[2] + 30.0,
            before[3] + 60.0,
        ]

    def test_unchanged_width_keeps_positions(self, reflow, make_row) -> None:
        _, cabinets = make_row([600.0, 400.0, 800.0])
        before = positions(cabinets)

        reflow.apply_width_change(cabinets[1], 400.0)

        assert positions(cabinets) == before

    def test_updates_row_timestamp(self, reflow, registry, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0])
        row = registry.get_row(row_id)
        row_before = row.updated_at

        updated = reflow.apply_width_change(cabinets[0], 650.0)

        assert updated.updated_at is not None
        assert updated.updated_at >= row_before


class TestUndo:
    """Tests for the single undo step of a reflow."""

    def test_one_step_named_reflow(self, model, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])
        steps = len(model.undo_names)

        reflow.apply_width_change(b, 450.0)

        assert len(model.undo_names) == steps + 1
        assert model.undo_names[-1] == OPERATION_NAME

    def test_undo_restores_widths_and_positions(self, model, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])
        before_positions = positions([a, b, c])
        before_widths = widths([a, b, c])

        reflow.apply_width_change(b, 450.0)
        model.undo()

        assert positions([a, b, c]) == before_positions
        assert widths([a, b, c]) == before_widths

    def test_redo_reapplies(self, model, reflow, make_row) -> None:
        _, (a, b, c) = make_row([600.0, 400.0, 800.0])
        reflow.apply_width_change(b, 450.0)
        after = positions([a, b, c])

        model.undo()
        model.redo()

        assert positions([a, b, c]) == after
        assert b.width_along_axis() == 450.0


class TestLockedLength:
    """Tests for rows with a locked total length."""

    def test_filler_absorbs_delta(self, reflow, registry, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 200.0], lock_total_length=True)

        reflow.apply_width_change(b, 440.0)

        assert widths([a, b, c]) == pytest.approx([600.0, 440.0, 160.0])
        assert positions([a, b, c]) == pytest.approx([2.0, 604.0, 1046.0])
        assert registry.get_row(row_id).total_length_mm == pytest.approx(1208.0)

    def test_span_preserved(self, reflow, factory, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 200.0], lock_total_length=True)

        reflow.apply_width_change(a, 550.0)

        snapshot = factory.get_snapshot_builder().build(factory.get_registry().get_row(row_id))
        assert snapshot.total_span_mm == pytest.approx(1208.0)
        assert c.width_along_axis() == pytest.approx(250.0)

    def test_filler_below_minimum_fails_atomically(self, model, reflow, make_row) -> None:
        _, cabinets = make_row([600.0, 400.0, 50.0], lock_total_length=True)
        before_positions = positions(cabinets)
        before_widths = widths(cabinets)
        steps = len(model.undo_names)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[1], 430.0)

        assert exc_info.value.code == "lock_length_failed"
        assert positions(cabinets) == before_positions
        assert widths(cabinets) == before_widths
        assert len(model.undo_names) == steps
        assert not model.operation_open

    def test_filler_at_minimum_fails(self, reflow, make_row) -> None:
        _, cabinets = make_row([600.0, 400.0, 50.0], lock_total_length=True)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[1], 425.0)

        assert exc_info.value.code == "lock_length_failed"

    def test_resizing_filler_fails(self, reflow, make_row) -> None:
        _, cabinets = make_row([600.0, 400.0, 200.0], lock_total_length=True)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[2], 250.0)

        assert exc_info.value.code == "lock_length_failed"
        assert cabinets[2].width_along_axis() == 200.0

    def test_shared_filler_definition_absorbs_all_instances_delta(
        self, model, reflow, factory, make_row
    ) -> None:
        row_id, (a, b, c) = make_row(
            [300.0, 400.0, 300.0], lock_total_length=True, definitions=["A", "B", "A"]
        )
        steps = len(model.undo_names)

        reflow.apply_width_change(a, 320.0, ReflowScope.ALL_INSTANCES)

        assert widths([a, b, c]) == pytest.approx([320.0, 400.0, 280.0])
        assert positions([a, b, c]) == pytest.approx([2.0, 324.0, 726.0])
        assert a.definition_id != c.definition_id
        snapshot = factory.get_snapshot_builder().build(factory.get_registry().get_row(row_id))
        assert snapshot.total_span_mm == pytest.approx(1008.0)
        assert len(model.undo_names) == steps + 1

    def test_shared_filler_definition_below_minimum_fails(self, reflow, make_row) -> None:
        _, cabinets = make_row(
            [100.0, 400.0, 100.0], lock_total_length=True, definitions=["A", "B", "A"]
        )

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[0], 200.0, ReflowScope.ALL_INSTANCES)

        assert exc_info.value.code == "lock_length_failed"
        assert widths(cabinets) == [100.0, 400.0, 100.0]

    def test_filler_made_unique(self, reflow, make_row) -> None:
        _, (a, b, c, d) = make_row(
            [600.0, 200.0, 400.0, 200.0], lock_total_length=True, definitions=["A", "F", "B", "F"]
        )

        reflow.apply_width_change(c, 420.0)

        assert d.width_along_axis() == pytest.approx(180.0)
        assert b.width_along_axis() == pytest.approx(200.0)
        assert b.definition_id != d.definition_id

    def test_custom_minimum_width(self, factory, make_row) -> None:
        from cabinet_rows.domain.services import ReflowEngine

        engine = ReflowEngine(factory.get_registry(), min_member_width_mm=180.0)
        _, cabinets = make_row([600.0, 400.0, 200.0], lock_total_length=True)

        with pytest.raises(RowError) as exc_info:
            engine.apply_width_change(cabinets[1], 420.0)

        assert exc_info.value.code == "lock_length_failed"


class TestValidation:
    """Tests for rejected reflow requests."""

    @pytest.mark.parametrize("width", [0, -5.0, "abc", None, float("inf"), True])
    def test_invalid_width(self, reflow, make_row, width) -> None:
        _, cabinets = make_row([600.0, 400.0])

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[0], width)

        assert exc_info.value.code == "invalid_width"

    def test_invalid_scope(self, reflow, make_row) -> None:
        _, cabinets = make_row([600.0, 400.0])

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[0], 500.0, "everything")

        assert exc_info.value.code == "invalid_scope"

    def test_not_in_row(self, model, reflow) -> None:
        loose = model.place_cabinet(600.0)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(loose, 500.0)

        assert exc_info.value.code == "not_in_row"

    def test_not_cabinet(self, model, reflow) -> None:
        panel = model.place_cabinet(600.0, is_cabinet=False)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(panel, 500.0)

        assert exc_info.value.code == "not_cabinet"

    def test_host_failure_is_reported_and_rolled_back(
        self, model, reflow, make_row, monkeypatch
    ) -> None:
        _, cabinets = make_row([600.0, 400.0, 800.0])
        before = positions(cabinets)

        def broken_move(self, position_mm: float) -> None:
            raise RuntimeError("host refused move")

        monkeypatch.setattr(PlacedCabinet, "move_along_axis", broken_move)

        with pytest.raises(RowError) as exc_info:
            reflow.apply_width_change(cabinets[1], 450.0)

        assert exc_info.value.code == "reflow_failed"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert positions(cabinets) == before
        assert cabinets[1].width_along_axis() == 400.0

    def test_member_erased_during_reflow_is_skipped(
        self, model, reflow, registry, make_row, monkeypatch
    ) -> None:
        row_id, (a, b, c, d) = make_row([600.0, 400.0, 800.0, 300.0])
        set_width = PlacedCabinet.set_width

        def set_width_then_erase(self, width_mm: float) -> None:
            set_width(self, width_mm)
            if self.persistent_id == b.persistent_id:
                c.erase()

        monkeypatch.setattr(PlacedCabinet, "set_width", set_width_then_erase)

        reflow.apply_width_change(b, 450.0)

        assert not c.is_valid()
        assert widths([a, b, d]) == [600.0, 450.0, 300.0]
        assert positions([a, b, d]) == [2.0, 604.0, 1056.0]
        assert model.undo_names[-1] == OPERATION_NAME
        assert not model.operation_open
        assert registry.get_row(row_id).member_ids == [
            a.persistent_id,
            b.persistent_id,
            d.persistent_id,
        ]


class TestReflowMemberAt:
    """Tests for index-based reflow."""

    def test_one_based_index(self, reflow, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0])

        reflow.reflow_member_at(row_id, 2, 450.0)

        assert b.width_along_axis() == 450.0

    @pytest.mark.parametrize("index", [0, 4])
    def test_index_out_of_range(self, reflow, make_row, index) -> None:
        row_id, _ = make_row([600.0, 400.0, 800.0])

        with pytest.raises(RowError) as exc_info:
            reflow.reflow_member_at(row_id, index, 450.0)

        assert exc_info.value.code == "invalid_member_index"

    def test_unknown_row(self, reflow) -> None:
        with pytest.raises(RowError) as exc_info:
            reflow.reflow_member_at("missing", 1, 450.0)

        assert exc_info.value.code == "unknown_row"


class TestRelayout:
    """Tests for reapplying the layout without width changes."""

    def test_restores_gaps_after_manual_move(self, reflow, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0])
        c.move_along_axis(3000.0)

        reflow.relayout(row_id)

        assert positions([a, b, c]) == [2.0, 604.0, 1006.0]


class TestScopeHelpers:
    """Tests for scope and width parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("instance", ReflowScope.INSTANCE_ONLY),
            ("instance_only", ReflowScope.INSTANCE_ONLY),
            ("ALL", ReflowScope.ALL_INSTANCES),
            (" all_instances ", ReflowScope.ALL_INSTANCES),
            (ReflowScope.ALL_INSTANCES, ReflowScope.ALL_INSTANCES),
        ],
    )
    def test_normalize_scope(self, value, expected) -> None:
        assert normalize_scope(value) is expected

    def test_normalize_scope_rejects_other_types(self) -> None:
        with pytest.raises(RowError):
            normalize_scope(1)  # type: ignore[arg-type]

    def test_coerce_positive_width_accepts_numeric_strings(self) -> None:
        assert coerce_positive_width("450") == 450.0
