"""Unit tests for the membership service.

These tests verify:
- Row creation orders members spatially and applies the reveal
- Selection validation rejects bad selections without side effects
- Add, remove and reorder relayout the row as one undo step
- Row settings updates and the length lock target
"""

import pytest

from cabinet_rows.domain.errors import InvalidSelectionError, RowError
from cabinet_rows.domain.services.placement import REVEAL_DICTIONARY, USE_ROW_REVEAL_KEY


def positions(cabinets) -> list[float]:
    return [cabinet.position_along_axis() for cabinet in cabinets]


class TestCreateFromSelection:
    """Tests for MembershipService.create_from_selection."""

    def test_members_ordered_by_position(self, membership, place_row) -> None:
        a, b, c = place_row([600.0, 400.0, 800.0])

        row_id = membership.create_from_selection([c, a, b])

        assert membership.get_row(row_id).member_ids == [
            a.persistent_id,
            b.persistent_id,
            c.persistent_id,
        ]

    def test_layout_applied_from_first_member(self, membership, place_row) -> None:
        cabinets = place_row([600.0, 400.0, 800.0], gap_mm=0.0, start_mm=100.0)

        membership.create_from_selection(cabinets, row_reveal_mm=3.0)

        assert positions(cabinets) == [100.0, 703.0, 1106.0]

    def test_default_reveal_used(self, membership, place_row) -> None:
        cabinets = place_row([600.0, 400.0])

        row_id = membership.create_from_selection(cabinets)

        assert membership.get_row(row_id).row_reveal_mm == 2.0

    def test_row_ids_are_unique(self, membership, place_row) -> None:
        first = membership.create_from_selection(place_row([600.0, 400.0]))
        second = membership.create_from_selection(place_row([600.0, 400.0], start_mm=5000.0))

        assert first != second
        assert {row.row_id for row in membership.list_rows()} == {first, second}

    def test_lock_captures_span(self, membership, place_row) -> None:
        cabinets = place_row([600.0, 400.0, 200.0])

        row_id = membership.create_from_selection(cabinets, lock_total_length=True)

        row = membership.get_row(row_id)
        assert row.lock_total_length is True
        assert row.total_length_mm == pytest.approx(1208.0)

    def test_timestamps_set(self, membership, place_row) -> None:
        row_id = membership.create_from_selection(place_row([600.0, 400.0]))

        row = membership.get_row(row_id)
        assert row.created_at is not None
        assert row.updated_at == row.created_at

    def test_single_undo_step(self, model, membership, place_row) -> None:
        cabinets = place_row([600.0, 400.0], gap_mm=0.0)

        membership.create_from_selection(cabinets, row_reveal_mm=5.0)

        assert model.undo_names == ["Create Row"]
        assert model.undo() == "Create Row"
        assert membership.list_rows() == []
        assert positions(cabinets) == [0.0, 600.0]

    def test_duplicate_selection_entries_collapsed(self, membership, place_row) -> None:
        a, b = place_row([600.0, 400.0])

        row_id = membership.create_from_selection([a, b, a])

        assert membership.get_row(row_id).member_ids == [a.persistent_id, b.persistent_id]


class TestSelectionValidation:
    """Tests for rejected selections."""

    def _assert_rejected(self, membership, model, selection, code: str, **kwargs) -> None:
        with pytest.raises(InvalidSelectionError) as exc_info:
            membership.create_from_selection(selection, **kwargs)
        assert exc_info.value.code == code
        assert model.undo_names == []

    def test_empty_selection(self, membership, model) -> None:
        self._assert_rejected(membership, model, [], "no_selection")

    def test_non_cabinet(self, membership, model, place_row) -> None:
        a = place_row([600.0])[0]
        panel = model.place_cabinet(300.0, 700.0, is_cabinet=False)

        self._assert_rejected(membership, model, [a, panel], "invalid_entities")

    def test_single_cabinet(self, membership, model, place_row) -> None:
        a = place_row([600.0])[0]

        self._assert_rejected(membership, model, [a], "insufficient_cabinets")
        self._assert_rejected(membership, model, [a, a], "insufficient_cabinets")

    def test_locked_cabinet(self, membership, model, place_row) -> None:
        a, b = place_row([600.0, 400.0])
        b.locked = True

        self._assert_rejected(membership, model, [a, b], "locked_cabinet")

    def test_already_in_row(self, membership, model, place_row) -> None:
        a, b, c = place_row([600.0, 400.0, 800.0])
        membership.create_from_selection([a, b])
        undo_count = len(model.undo_names)

        with pytest.raises(InvalidSelectionError) as exc_info:
            membership.create_from_selection([b, c])

        assert exc_info.value.code == "already_in_row"
        assert len(model.undo_names) == undo_count

    def test_not_collinear(self, membership, model, place_row) -> None:
        a = place_row([600.0])[0]
        b = model.place_cabinet(400.0, 700.0, 10.0, 0.0)

        self._assert_rejected(membership, model, [a, b], "not_collinear")

    def test_within_tolerance_is_collinear(self, membership, model, place_row) -> None:
        a = place_row([600.0])[0]
        b = model.place_cabinet(400.0, 700.0, 0.4, 0.0)

        assert membership.create_from_selection([a, b])

    def test_negative_reveal(self, membership, model, place_row) -> None:
        self._assert_rejected(
            membership, model, place_row([600.0, 400.0]), "invalid_reveal", row_reveal_mm=-1.0
        )

    def test_nothing_moved_on_rejection(self, membership, model, place_row) -> None:
        cabinets = place_row([600.0, 400.0], gap_mm=0.0)
        cabinets[1].locked = True

        with pytest.raises(InvalidSelectionError):
            membership.create_from_selection(cabinets, row_reveal_mm=10.0)

        assert positions(cabinets) == [0.0, 600.0]
        assert membership.list_rows() == []


class TestEditMembers:
    """Tests for add, remove and reorder."""

    def test_add_appends_and_lays_out(self, membership, model, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0])
        extra = model.place_cabinet(300.0, 5000.0)

        row = membership.add_members(row_id, [extra])

        assert row.member_ids[-1] == extra.persistent_id
        assert extra.position_along_axis() == pytest.approx(1006.0)
        assert model.undo_names[-1] == "Add Row Members"

    def test_add_existing_member_is_ignored(self, membership, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0])

        row = membership.add_members(row_id, [cabinets[0]])

        assert row.member_ids == [c.persistent_id for c in cabinets]

    def test_add_member_of_other_row(self, membership, make_row) -> None:
        first, _ = make_row([600.0, 400.0])
        _, others = make_row([500.0, 500.0], start_mm=5000.0)

        with pytest.raises(RowError) as exc_info:
            membership.add_members(first, [others[0]])

        assert exc_info.value.code == "already_in_row"
        assert len(membership.get_row(first).member_ids) == 2

    def test_add_non_cabinet(self, membership, model, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0])
        panel = model.place_cabinet(300.0, 5000.0, is_cabinet=False)

        with pytest.raises(InvalidSelectionError) as exc_info:
            membership.add_members(row_id, [panel])

        assert exc_info.value.code == "invalid_entities"

    def test_add_to_unknown_row(self, membership, model) -> None:
        with pytest.raises(RowError) as exc_info:
            membership.add_members("missing", [model.place_cabinet(300.0)])

        assert exc_info.value.code == "unknown_row"

    def test_remove_closes_gap(self, membership, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0])

        row = membership.remove_members(row_id, [b])

        assert row is not None
        assert row.member_ids == [a.persistent_id, c.persistent_id]
        assert positions([a, c]) == [2.0, 604.0]

    def test_remove_all_deletes_row(self, membership, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0])

        assert membership.remove_members(row_id, cabinets) is None
        assert membership.list_rows() == []

    def test_removed_member_keeps_no_cache(self, registry, membership, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0])

        membership.remove_members(row_id, [c])

        assert registry.for_instance(c) is None

    def test_reorder(self, membership, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0])

        row = membership.reorder(row_id, [c.persistent_id, a.persistent_id, b.persistent_id])

        assert row.member_ids == [c.persistent_id, a.persistent_id, b.persistent_id]
        assert positions([c, a, b]) == [2.0, 804.0, 1406.0]

    @pytest.mark.parametrize(
        "order", [[], [1, 2], [1, 2, 2], [1, 2, 99], ["x", "y", "z"], [1, None, 3]]
    )
    def test_reorder_requires_permutation(self, membership, make_row, order) -> None:
        row_id, cabinets = make_row([600.0, 400.0, 800.0])
        before = membership.get_row(row_id).member_ids

        with pytest.raises(RowError) as exc_info:
            membership.reorder(row_id, order)

        assert exc_info.value.code == "invalid_order"
        assert membership.get_row(row_id).member_ids == before

    def test_locked_row_recaptures_span_on_add(self, membership, model, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0], lock_total_length=True)
        extra = model.place_cabinet(300.0, 5000.0)

        row = membership.add_members(row_id, [extra])

        assert row.total_length_mm == pytest.approx(1308.0)


class TestUpdate:
    """Tests for row settings updates."""

    def test_reveal_change_relayouts_from_origin(self, membership, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0, 800.0])

        row = membership.update(row_id, row_reveal_mm=5.0)

        assert row.row_reveal_mm == 5.0
        assert positions(cabinets) == [5.0, 610.0, 1015.0]

    def test_lock_captures_current_span(self, membership, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0, 200.0])

        row = membership.update(row_id, lock_total_length=True)

        assert row.total_length_mm == pytest.approx(1208.0)

    def test_unlock_clears_target(self, membership, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0], lock_total_length=True)

        row = membership.update(row_id, lock_total_length=False)

        assert row.lock_total_length is False
        assert row.total_length_mm is None

    def test_explicit_total_length(self, membership, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0])

        row = membership.update(row_id, lock_total_length=True, total_length_mm=1500.0)

        assert row.total_length_mm == 1500.0

    @pytest.mark.parametrize("total", [0.0, -10.0, float("nan")])
    def test_invalid_total_length(self, membership, make_row, total) -> None:
        row_id, _ = make_row([600.0, 400.0])

        with pytest.raises(RowError) as exc_info:
            membership.update(row_id, lock_total_length=True, total_length_mm=total)

        assert exc_info.value.code == "invalid_total_length"

    def test_reveal_change_recaptures_lock(self, membership, make_row) -> None:
        row_id, _ = make_row([600.0, 400.0], lock_total_length=True)

        row = membership.update(row_id, row_reveal_mm=4.0)

        assert row.total_length_mm == pytest.approx(1012.0)


class TestUseRowReveal:
    """Tests for the per-member reveal opt-out."""

    def test_opt_out_uses_legacy_gaps(self, membership, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0], row_reveal_mm=5.0)

        membership.set_use_row_reveal(b, False)

        assert b.get_attribute(REVEAL_DICTIONARY, USE_ROW_REVEAL_KEY) is False
        assert positions([a, b, c]) == [2.0, 604.0, 1006.0]

    def test_opt_back_in(self, membership, make_row) -> None:
        row_id, (a, b, c) = make_row([600.0, 400.0, 800.0], row_reveal_mm=5.0)
        membership.set_use_row_reveal(b, False)

        membership.set_use_row_reveal(b, True)

        assert positions([a, b, c]) == [2.0, 607.0, 1012.0]

    def test_non_member_keeps_preference(self, membership, model) -> None:
        loose = model.place_cabinet(600.0)

        assert membership.set_use_row_reveal(loose, False) is None
        assert loose.get_attribute(REVEAL_DICTIONARY, USE_ROW_REVEAL_KEY) is False


class TestDeleteRow:
    """Tests for dissolving rows."""

    def test_members_stay_in_place(self, membership, make_row) -> None:
        row_id, cabinets = make_row([600.0, 400.0])
        before = positions(cabinets)

        membership.delete_row(row_id)

        assert membership.list_rows() == []
        assert positions(cabinets) == before

    def test_unknown_row(self, membership) -> None:
        with pytest.raises(RowError) as exc_info:
            membership.delete_row("missing")

        assert exc_info.value.code == "unknown_row"
