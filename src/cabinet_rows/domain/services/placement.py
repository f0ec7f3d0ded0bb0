"""Helpers shared by the services that move row members."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

from ..value_objects import MemberExtent, RowLayout

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import HostModelProtocol, PlacedObjectProtocol

# Per-object opt-out of the row reveal.
REVEAL_DICTIONARY = "cabinet_rows.reveal"
USE_ROW_REVEAL_KEY = "use_row_reveal"

# Moves smaller than this are skipped.
POSITION_EPSILON_MM = 1e-6


@contextmanager
def host_operation(model: HostModelProtocol, name: str) -> Iterator[None]:
    """Run the enclosed block as one host transaction.

    The transaction is committed when the block finishes and aborted if it
    raises, so the whole block forms a single undo step or leaves no trace.
    """
    model.start_operation(name)
    try:
        yield
    except BaseException:
        model.abort_operation()
        raise
    model.commit_operation()


def uses_row_reveal(obj: PlacedObjectProtocol) -> bool:
    """Read the per-object reveal opt-out. Missing means opted in."""
    value = obj.get_attribute(REVEAL_DICTIONARY, USE_ROW_REVEAL_KEY)
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def member_extents(
    members: Sequence[PlacedObjectProtocol],
    width_overrides: dict[int, float] | None = None,
) -> list[MemberExtent]:
    """Build layout inputs from live members, optionally with staged widths."""
    overrides = width_overrides or {}
    return [
        MemberExtent(
            persistent_id=member.persistent_id,
            width_mm=overrides.get(member.persistent_id, member.width_along_axis()),
            use_row_reveal=uses_row_reveal(member),
        )
        for member in members
    ]


def row_origin(members: Sequence[PlacedObjectProtocol], layout: RowLayout) -> float:
    """Row origin implied by the first member's current position."""
    if not members:
        return 0.0
    return members[0].position_along_axis() - layout.leading_gap_mm


def place_members(
    members: Sequence[PlacedObjectProtocol], layout: RowLayout, origin_mm: float
) -> int:
    """Move members to the offsets of a layout. Returns the number moved."""
    moved = 0
    for member, offset in zip(members, layout.offsets_mm):
        if not member.is_valid():
            continue
        target = origin_mm + offset
        if math.isclose(
            member.position_along_axis(), target, abs_tol=POSITION_EPSILON_MM
        ):
            continue
        member.move_along_axis(target)
        moved += 1
    return moved
