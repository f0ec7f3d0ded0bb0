"""Row highlight: outline geometry handed to a pluggable provider."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..value_objects import ORIGIN_MARKER_SIZE_MM, HighlightGeometry, Point3D
from .registry import RowRegistry

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import (
        HighlightProviderProtocol,
        PlacedObjectProtocol,
    )


def build_geometry(
    row_id: str, members: Iterable[PlacedObjectProtocol]
) -> HighlightGeometry:
    """Polyline through each live member's front-left-bottom corner."""
    polyline = tuple(member.origin for member in members if member.is_valid())
    return HighlightGeometry(
        row_id=row_id,
        polyline=polyline,
        origin_segments=origin_marker(polyline[0]) if polyline else (),
    )


def origin_marker(
    origin: Point3D, size_mm: float = ORIGIN_MARKER_SIZE_MM
) -> tuple[Point3D, ...]:
    """Three axis-aligned segments crossing at ``origin``, as point pairs."""
    return (
        origin.offset(dx=-size_mm),
        origin.offset(dx=size_mm),
        origin.offset(dz=-size_mm),
        origin.offset(dz=size_mm),
        origin.offset(dy=-size_mm),
        origin.offset(dy=size_mm),
    )


class RowHighlighter:
    """Shows and hides the outline of one row at a time.

    Only geometry is computed here; the provider owns whatever is drawn.
    """

    def __init__(
        self, registry: RowRegistry, provider: HighlightProviderProtocol
    ) -> None:
        self.registry = registry
        self.provider = provider
        self.active_row_id: str | None = None

    def highlight(self, row_id: str, enabled: bool) -> HighlightGeometry | None:
        """Show the row's outline, or hide it. Returns the geometry shown."""
        if enabled:
            return self.show(row_id)
        self.hide()
        return None

    def show(self, row_id: str) -> HighlightGeometry | None:
        row = self.registry.get_row(row_id)
        geometry = build_geometry(row_id, self.registry.resolve_members(row))
        if geometry.is_empty:
            self.hide()
            return None
        self.provider.show(geometry)
        self.active_row_id = row_id
        return geometry

    def hide(self) -> None:
        self.provider.hide()
        self.active_row_id = None

    def refresh(self, row_id: str) -> HighlightGeometry | None:
        """Recompute the outline if ``row_id`` is the active highlight."""
        if self.active_row_id != row_id:
            return None
        row = self.registry.find_row(row_id)
        if row is None:
            self.hide()
            return None
        geometry = build_geometry(row_id, self.registry.resolve_members(row))
        if geometry.is_empty:
            self.hide()
            return None
        self.provider.show(geometry)
        return geometry
