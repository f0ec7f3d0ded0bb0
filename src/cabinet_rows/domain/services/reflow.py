"""Reflow engine: respond to a member's width change across its whole row.

A reflow is planned entirely in memory first: the new widths (including
every member that shares the edited definition under ``all_instances``
scope, and the filler when the row length is locked) are staged, the
reveal layout is computed and the lock constraint is checked. Only when
the plan is feasible is a host transaction opened to write widths, re-read
them from the host and move the members. A failed plan performs no writes.

Downstream members shift by the sum of all upstream width deltas, so a
shared definition that appears twice upstream of a member moves it by
twice the per-occurrence delta.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..entities import Row
from ..errors import RowError
from ..value_objects import MIN_MEMBER_WIDTH_MM, ReflowScope, RowLayout
from .placement import host_operation, member_extents, place_members, row_origin
from .registry import RowRegistry
from .reveal import RevealCalculator

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import PlacedObjectProtocol

logger = logging.getLogger(__name__)

OPERATION_NAME = "Reflow Row"

# Width changes smaller than this are treated as no change.
WIDTH_EPSILON_MM = 1e-9

_SCOPE_ALIASES: dict[str, ReflowScope] = {
    "instance_only": ReflowScope.INSTANCE_ONLY,
    "instance": ReflowScope.INSTANCE_ONLY,
    "all_instances": ReflowScope.ALL_INSTANCES,
    "all": ReflowScope.ALL_INSTANCES,
}


def normalize_scope(scope: ReflowScope | str) -> ReflowScope:
    """Accept a ReflowScope or one of its string aliases (case-insensitive)."""
    if isinstance(scope, ReflowScope):
        return scope
    if isinstance(scope, str):
        resolved = _SCOPE_ALIASES.get(scope.strip().lower())
        if resolved is not None:
            return resolved
    raise RowError("invalid_scope", "Scope must be 'instance_only' or 'all_instances'.")


def coerce_positive_width(value: object) -> float:
    """Parse a width in millimeters, rejecting non-numeric and non-positive values."""
    if isinstance(value, bool):
        raise RowError("invalid_width", "Width must be expressed in millimeters.")
    try:
        width = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise RowError("invalid_width", "Width must be expressed in millimeters.")
    if not math.isfinite(width) or width <= 0:
        raise RowError("invalid_width", "Width must be positive.")
    return width


@dataclass
class ReflowPlan:
    """Staged result of a reflow, computed before any host write.

    Attributes:
        row: Row being reflowed.
        members: Live members in row order at planning time.
        origin_mm: Row origin the layout is anchored to.
        target: Member whose width was edited.
        new_width_mm: Requested width of the target.
        scope: Propagation scope of the edit.
        widths_mm: Staged width of every member, keyed by persistent id.
        layout: Reveal layout of the staged widths.
        filler: Member absorbing the lock-length delta, if any.
        filler_width_mm: Staged width of the filler.
    """

    row: Row
    members: list[PlacedObjectProtocol]
    origin_mm: float
    target: PlacedObjectProtocol
    new_width_mm: float
    scope: ReflowScope
    widths_mm: dict[int, float] = field(default_factory=dict)
    layout: RowLayout = field(default_factory=RowLayout)
    filler: PlacedObjectProtocol | None = None
    filler_width_mm: float | None = None

    @property
    def width_changed(self) -> bool:
        return not math.isclose(
            self.target.width_along_axis(), self.new_width_mm, abs_tol=WIDTH_EPSILON_MM
        )


class ReflowEngine:
    """Applies width changes to row members and repositions the row.

    Args:
        registry: Registry of the host model to operate on.
        calculator: Reveal calculator used to derive member positions.
        min_member_width_mm: Smallest width the filler may shrink to. A
            filler width at or below this value aborts the reflow.
    """

    def __init__(
        self,
        registry: RowRegistry,
        calculator: RevealCalculator | None = None,
        min_member_width_mm: float = MIN_MEMBER_WIDTH_MM,
    ) -> None:
        self.registry = registry
        self.calculator = calculator or RevealCalculator()
        self.min_member_width_mm = min_member_width_mm

    @property
    def model(self):
        return self.registry.model

    def apply_width_change(
        self,
        member: PlacedObjectProtocol,
        new_width_mm: float,
        scope: ReflowScope | str = ReflowScope.INSTANCE_ONLY,
    ) -> Row:
        """Resize a member and reflow its row as one undo step.

        Args:
            member: Row member to resize.
            new_width_mm: New width in millimeters, must be positive.
            scope: ``instance_only`` makes the member unique before resizing
                it; ``all_instances`` resizes its shared definition, so every
                member using that definition changes too.

        Returns:
            The reflowed row.

        Raises:
            RowError: ``invalid_width``, ``invalid_scope``, ``not_cabinet``,
                ``not_in_row``, ``lock_length_failed`` or ``reflow_failed``.
                The host state is unchanged whenever this is raised.
        """
        width = coerce_positive_width(new_width_mm)
        resolved_scope = normalize_scope(scope)
        if member is None or not member.is_valid() or not member.is_cabinet():
            raise RowError(
                "not_cabinet", "Width changes can only be applied to cabinets."
            )

        membership = self.registry.for_instance(member)
        if membership is None:
            raise RowError("not_in_row", "The cabinet is not part of a row.")

        rows = self.registry.load()
        row = rows[membership.row_id]
        members = self.registry.resolve_members(row)
        if member.persistent_id not in {m.persistent_id for m in members}:
            raise RowError("not_in_row", "The cabinet is no longer part of the row.")

        plan = self.plan(row, members, member, width, resolved_scope)

        try:
            with host_operation(self.model, OPERATION_NAME):
                self._execute(plan)
                row.touch()
                self.registry.save(rows)
        except RowError:
            raise
        except Exception as exc:
            logger.warning(f"Row reflow failed for row {row.row_id}: {exc}")
            raise RowError(
                "reflow_failed", "Unable to reflow the row after editing width."
            ) from exc

        logger.debug(
            f"Reflowed row {row.row_id}: member {member.persistent_id} -> {width} mm "
            f"({resolved_scope.value})"
        )
        return row

    def reflow_member_at(
        self,
        row_id: str,
        index: int,
        new_width_mm: float,
        scope: ReflowScope | str = ReflowScope.INSTANCE_ONLY,
    ) -> Row:
        """Resize the member at a 1-based position in a row."""
        row = self.registry.get_row(row_id)
        members = self.registry.resolve_members(row)
        if not members:
            raise RowError("row_empty", "Row has no members to reflow.")
        if index < 1:
            raise RowError("invalid_member_index", "Member index must be at least 1.")
        if index > len(members):
            raise RowError("invalid_member_index", "Member index exceeds row length.")
        return self.apply_width_change(members[index - 1], new_width_mm, scope)

    def relayout(self, row_id: str) -> Row:
        """Reapply the reveal layout to a row without changing any width."""
        with host_operation(self.model, "Relayout Row"):
            rows = self.registry.load()
            row = rows.get(row_id)
            if row is None:
                raise RowError("unknown_row", f"Row {row_id!r} not found.")
            members = self.registry.resolve_members(row)
            extents = member_extents(members)
            current = self.calculator.compute_layout(extents, row.row_reveal_mm)
            origin = row_origin(members, current)
            place_members(members, current, origin)
            self.registry.save(rows)
        return row

    def plan(
        self,
        row: Row,
        members: list[PlacedObjectProtocol],
        target: PlacedObjectProtocol,
        new_width_mm: float,
        scope: ReflowScope,
    ) -> ReflowPlan:
        """Stage widths and positions for a reflow without touching the host.

        Raises:
            RowError: ``lock_length_failed`` if the locked row length cannot
                be held by resizing the filler.
        """
        current = self.calculator.compute_layout(
            member_extents(members), row.row_reveal_mm
        )
        plan = ReflowPlan(
            row=row,
            members=members,
            origin_mm=row_origin(members, current),
            target=target,
            new_width_mm=new_width_mm,
            scope=scope,
        )

        affected = self._affected_ids(members, target, scope)
        plan.widths_mm = {
            m.persistent_id: (new_width_mm if m.persistent_id in affected else m.width_along_axis())
            for m in members
        }
        plan.layout = self.calculator.compute_layout(
            member_extents(members, plan.widths_mm), row.row_reveal_mm
        )

        if row.lock_total_length:
            locked = row.total_length_mm
            if locked is None:
                locked = current.total_span_mm
                row.total_length_mm = locked
            self._stage_filler(plan, locked)

        return plan

    def _stage_filler(self, plan: ReflowPlan, locked_total_mm: float) -> None:
        net_delta = plan.layout.total_span_mm - locked_total_mm
        if abs(net_delta) <= WIDTH_EPSILON_MM:
            return

        filler = plan.members[-1]
        if filler.persistent_id == plan.target.persistent_id:
            raise RowError(
                "lock_length_failed",
                "Row lock prevents applying this width change: the filler is being resized.",
            )

        # A filler sharing the edited definition starts from the shared width
        # and is made unique after the shared resize is written.
        filler_width = plan.widths_mm[filler.persistent_id] - net_delta
        if filler_width <= self.min_member_width_mm:
            raise RowError(
                "lock_length_failed",
                f"Row lock prevents applying this width change: filler would be "
                f"{filler_width:.1f} mm (minimum {self.min_member_width_mm:.1f} mm).",
            )

        plan.filler = filler
        plan.filler_width_mm = filler_width
        plan.widths_mm[filler.persistent_id] = filler_width
        plan.layout = self.calculator.compute_layout(
            member_extents(plan.members, plan.widths_mm), plan.row.row_reveal_mm
        )

    @staticmethod
    def _affected_ids(
        members: list[PlacedObjectProtocol],
        target: PlacedObjectProtocol,
        scope: ReflowScope,
    ) -> set[int]:
        if scope is ReflowScope.ALL_INSTANCES:
            return {
                m.persistent_id
                for m in members
                if m.definition_id == target.definition_id
            }
        return {target.persistent_id}

    def _execute(self, plan: ReflowPlan) -> None:
        """Write a staged plan to the host. Runs inside the reflow transaction."""
        if plan.width_changed:
            if plan.scope is ReflowScope.INSTANCE_ONLY:
                plan.target.make_unique()
            plan.target.set_width(plan.new_width_mm)

        if plan.filler is not None and plan.filler_width_mm is not None:
            plan.filler.make_unique()
            plan.filler.set_width(plan.filler_width_mm)

        # Widths are re-read from the host; members erased since planning are skipped.
        live = [m for m in plan.members if m.is_valid()]
        layout = self.calculator.compute_layout(
            member_extents(live), plan.row.row_reveal_mm
        )
        place_members(live, layout, plan.origin_mm)
