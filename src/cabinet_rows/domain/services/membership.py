"""Membership service: create rows and keep their membership consistent.

Every mutator reads the registry, applies its change, relayouts the row
with the reveal calculator and writes the registry back, all inside one
host transaction. Validation happens before anything is mutated; if a
later step fails the transaction is aborted and nothing changes.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from ..entities import Membership, Row, utc_timestamp
from ..errors import InvalidSelectionError, RowError
from ..value_objects import COLLINEAR_TOLERANCE_MM, DEFAULT_ROW_REVEAL_MM
from .placement import (
    REVEAL_DICTIONARY,
    USE_ROW_REVEAL_KEY,
    host_operation,
    member_extents,
    place_members,
    row_origin,
)
from .registry import RowRegistry
from .reveal import RevealCalculator

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import PlacedObjectProtocol

logger = logging.getLogger(__name__)

_UNSET = object()


class MembershipService:
    """Creates rows from selections and edits their membership and settings.

    Args:
        registry: Registry of the host model to operate on.
        calculator: Reveal calculator used to relayout rows after changes.
        default_row_reveal_mm: Reveal given to newly created rows.
        collinear_tolerance_mm: Maximum cross-axis spread of a selection.
    """

    def __init__(
        self,
        registry: RowRegistry,
        calculator: RevealCalculator | None = None,
        default_row_reveal_mm: float = DEFAULT_ROW_REVEAL_MM,
        collinear_tolerance_mm: float = COLLINEAR_TOLERANCE_MM,
    ) -> None:
        self.registry = registry
        self.calculator = calculator or RevealCalculator()
        self.default_row_reveal_mm = default_row_reveal_mm
        self.collinear_tolerance_mm = collinear_tolerance_mm

    @property
    def model(self):
        return self.registry.model

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_rows(self) -> list[Row]:
        return self.registry.list_rows()

    def get_row(self, row_id: str) -> Row:
        return self.registry.get_row(row_id)

    def members_of(self, row_id: str) -> list[PlacedObjectProtocol]:
        return self.registry.resolve_members(self.registry.get_row(row_id))

    def for_instance(self, obj: PlacedObjectProtocol | None) -> Membership | None:
        return self.registry.for_instance(obj)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def create_from_selection(
        self,
        selected: Iterable[PlacedObjectProtocol],
        row_reveal_mm: float | None = None,
        lock_total_length: bool = False,
    ) -> str:
        """Create a row from selected cabinets.

        Members are ordered by their position along the row axis, not by
        selection order. The first member stays in place and the rest are
        laid out with the row reveal.

        Returns:
            The new row id.

        Raises:
            InvalidSelectionError: If the selection cannot form a row.
                Nothing is created.
        """
        reveal = self._coerce_reveal(row_reveal_mm)
        rows = self.registry.load()
        instances = self._validate_selection(list(selected), rows)
        ordered = sorted(
            instances,
            key=lambda obj: (obj.position_along_axis(), obj.persistent_id),
        )

        row_id = str(uuid.uuid4())
        timestamp = utc_timestamp()
        row = Row(
            row_id=row_id,
            member_ids=[obj.persistent_id for obj in ordered],
            row_reveal_mm=reveal,
            lock_total_length=bool(lock_total_length),
            created_at=timestamp,
            updated_at=timestamp,
        )

        with host_operation(self.model, "Create Row"):
            rows = self.registry.load()
            rows[row_id] = row
            layout = self.calculator.compute_layout(member_extents(ordered), reveal)
            place_members(ordered, layout, row_origin(ordered, layout))
            if row.lock_total_length:
                row.total_length_mm = layout.total_span_mm
            self.registry.save(rows)

        logger.debug(f"Created row {row_id} with {len(ordered)} member(s)")
        return row_id

    def add_members(
        self, row_id: str, objects: Iterable[PlacedObjectProtocol]
    ) -> Row:
        """Append cabinets to the end of a row and relayout it.

        Objects already in the row are ignored.

        Raises:
            RowError: ``unknown_row`` if the row does not exist,
                ``already_in_row`` if an object belongs to another row.
            InvalidSelectionError: ``invalid_entities`` if an object is not
                a live cabinet.
        """
        candidates = list(objects)
        with host_operation(self.model, "Add Row Members"):
            rows = self.registry.load()
            row = self._require_row(rows, row_id)

            for obj in candidates:
                if obj is None or not obj.is_valid() or not obj.is_cabinet():
                    raise InvalidSelectionError(
                        "invalid_entities", "Only cabinets can be added to a row."
                    )
                owner = self.registry.row_id_of(rows, obj.persistent_id)
                if owner is not None and owner != row_id:
                    raise RowError(
                        "already_in_row",
                        f"Cabinet {obj.persistent_id} already belongs to another row.",
                    )

            before = self.registry.resolve_members(row)
            origin = self._current_origin(row, before)
            added = [obj.persistent_id for obj in candidates if row.append(obj.persistent_id)]
            if added:
                row.touch()
                self._relayout(row, origin)
            self.registry.save(rows)

        logger.debug(f"Added {len(added)} member(s) to row {row_id}")
        return row

    def remove_members(
        self, row_id: str, objects: Iterable[PlacedObjectProtocol]
    ) -> Row | None:
        """Remove cabinets from a row and relayout the survivors.

        Returns:
            The updated row, or None if the row became empty and was deleted.
        """
        targets = list(objects)
        with host_operation(self.model, "Remove Row Members"):
            rows = self.registry.load()
            row = self._require_row(rows, row_id)

            before = self.registry.resolve_members(row)
            origin = self._current_origin(row, before)
            removed = [
                obj.persistent_id
                for obj in targets
                if obj is not None and row.discard(obj.persistent_id)
            ]
            if removed:
                row.touch()
            if row.is_empty:
                del rows[row_id]
                logger.debug(f"Row {row_id} deleted after removing its last member")
            elif removed:
                self._relayout(row, origin)
            self.registry.save(rows)

        return None if row.is_empty else row

    def reorder(self, row_id: str, new_order: Sequence[int]) -> Row:
        """Replace the member order with a permutation of the current members.

        Raises:
            RowError: ``invalid_order`` if ``new_order`` is not a permutation
                of the row's members. The row is left unchanged.
        """
        try:
            order = [int(pid) for pid in new_order]
        except (TypeError, ValueError):
            raise RowError(
                "invalid_order", "New order must list persistent ids of the row's members."
            )
        with host_operation(self.model, "Reorder Row"):
            rows = self.registry.load()
            row = self._require_row(rows, row_id)
            if len(order) != len(row.member_ids) or set(order) != set(row.member_ids):
                raise RowError(
                    "invalid_order",
                    "New order must be a permutation of the row's current members.",
                )

            if order != row.member_ids:
                origin = self._current_origin(row, self.registry.resolve_members(row))
                row.member_ids = order
                row.touch()
                self._relayout(row, origin)
            self.registry.save(rows)

        return row

    def update(
        self,
        row_id: str,
        row_reveal_mm: float | None = None,
        lock_total_length: bool | None = None,
        total_length_mm: float | None | object = _UNSET,
    ) -> Row:
        """Change row-level settings.

        Turning the lock on without a ``total_length_mm`` captures the row's
        current span as the lock target. Turning it off clears the target.
        """
        reveal = None if row_reveal_mm is None else self._coerce_reveal(row_reveal_mm)
        explicit_total = total_length_mm is not _UNSET and total_length_mm is not None
        if explicit_total:
            total = float(total_length_mm)  # type: ignore[arg-type]
            if not math.isfinite(total) or total <= 0:
                raise RowError("invalid_total_length", "Total length must be positive.")

        with host_operation(self.model, "Update Row"):
            rows = self.registry.load()
            row = self._require_row(rows, row_id)
            members = self.registry.resolve_members(row)
            origin = self._current_origin(row, members)
            was_locked = row.lock_total_length

            if reveal is not None:
                row.row_reveal_mm = reveal
            if lock_total_length is not None:
                row.lock_total_length = bool(lock_total_length)

            if explicit_total:
                row.total_length_mm = total
            elif not row.lock_total_length:
                row.total_length_mm = None

            layout = self._relayout(row, origin, recapture=False)
            if row.lock_total_length and not explicit_total:
                just_locked = not was_locked or row.total_length_mm is None
                if just_locked or reveal is not None:
                    row.total_length_mm = layout.total_span_mm

            row.touch()
            self.registry.save(rows)

        return row

    def set_use_row_reveal(self, obj: PlacedObjectProtocol, enabled: bool) -> Row | None:
        """Opt a cabinet in or out of its row's reveal and relayout the row.

        Returns:
            The cabinet's row, or None if it is not a member of any row.
        """
        if obj is None or not obj.is_valid():
            raise RowError("not_cabinet", "Reveal settings need a live cabinet.")

        with host_operation(self.model, "Set Row Reveal"):
            obj.set_attribute(REVEAL_DICTIONARY, USE_ROW_REVEAL_KEY, bool(enabled))
            membership = self.registry.for_instance(obj)
            if membership is None:
                return None
            rows = self.registry.load()
            row = rows[membership.row_id]
            origin = self._current_origin(row, self.registry.resolve_members(row))
            row.touch()
            self._relayout(row, origin)
            self.registry.save(rows)

        return row

    def delete_row(self, row_id: str) -> None:
        """Dissolve a row. Members stay where they are."""
        with host_operation(self.model, "Delete Row"):
            rows = self.registry.load()
            self._require_row(rows, row_id)
            del rows[row_id]
            self.registry.save(rows)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_selection(
        self, selected: list[PlacedObjectProtocol], rows: dict[str, Row]
    ) -> list[PlacedObjectProtocol]:
        if not selected:
            raise InvalidSelectionError(
                "no_selection", "Select at least two cabinets to create a row."
            )
        if any(obj is None or not obj.is_valid() or not obj.is_cabinet() for obj in selected):
            raise InvalidSelectionError(
                "invalid_entities", "Selection must contain only cabinets."
            )

        unique: dict[int, PlacedObjectProtocol] = {}
        for obj in selected:
            unique.setdefault(obj.persistent_id, obj)
        instances = list(unique.values())

        if len(instances) < 2:
            raise InvalidSelectionError(
                "insufficient_cabinets", "Select at least two cabinets to create a row."
            )
        if any(obj.locked for obj in instances):
            raise InvalidSelectionError(
                "locked_cabinet", "Unlock cabinets before adding them to a row."
            )
        if any(obj.persistent_id <= 0 for obj in instances):
            raise InvalidSelectionError(
                "missing_persistent_id", "One or more cabinets are missing a persistent id."
            )
        for obj in instances:
            if self.registry.row_id_of(rows, obj.persistent_id) is not None:
                raise InvalidSelectionError(
                    "already_in_row",
                    f"Cabinet {obj.persistent_id} already belongs to a row.",
                )
        if not self._roughly_collinear(instances):
            raise InvalidSelectionError(
                "not_collinear",
                "Selected cabinets must be roughly collinear along the row axis.",
            )
        return instances

    def _roughly_collinear(self, instances: Sequence[PlacedObjectProtocol]) -> bool:
        ys = [obj.origin.y for obj in instances]
        zs = [obj.origin.z for obj in instances]
        return (
            max(ys) - min(ys) <= self.collinear_tolerance_mm
            and max(zs) - min(zs) <= self.collinear_tolerance_mm
        )

    def _coerce_reveal(self, value: float | None) -> float:
        if value is None:
            return self.default_row_reveal_mm
        try:
            reveal = float(value)
        except (TypeError, ValueError):
            reveal = math.nan
        if not math.isfinite(reveal) or reveal < 0:
            raise InvalidSelectionError(
                "invalid_reveal", "Row reveal must be a non-negative number of millimeters."
            )
        return reveal

    @staticmethod
    def _require_row(rows: dict[str, Row], row_id: str) -> Row:
        row = rows.get(row_id)
        if row is None:
            raise RowError("unknown_row", f"Row {row_id!r} not found.")
        return row

    def _current_origin(
        self, row: Row, members: Sequence[PlacedObjectProtocol]
    ) -> float:
        layout = self.calculator.compute_layout(
            member_extents(members), row.row_reveal_mm
        )
        return row_origin(members, layout)

    def _relayout(self, row: Row, origin_mm: float, recapture: bool = True):
        """Place the row's live members from ``origin_mm`` and return the layout.

        With ``recapture`` a locked row takes the new span as its lock target,
        since membership changes move the row's ends.
        """
        members = self.registry.resolve_members(row)
        layout = self.calculator.compute_layout(
            member_extents(members), row.row_reveal_mm
        )
        place_members(members, layout, origin_mm)
        if recapture and row.lock_total_length:
            row.total_length_mm = layout.total_span_mm
        return layout
