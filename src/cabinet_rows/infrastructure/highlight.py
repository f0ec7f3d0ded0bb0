"""Highlight providers that keep the outline in memory."""

from __future__ import annotations

import logging

from cabinet_rows.domain.value_objects import HighlightGeometry

logger = logging.getLogger(__name__)


class RecordingHighlightProvider:
    """Holds the currently shown outline and a history of show/hide calls.

    Used by the CLI, which prints the outline instead of drawing it, and by
    tests that assert on what the engine emitted.
    """

    def __init__(self) -> None:
        self.geometry: HighlightGeometry | None = None
        self.events: list[tuple[str, str | None]] = []

    @property
    def visible(self) -> bool:
        return self.geometry is not None

    def show(self, geometry: HighlightGeometry) -> None:
        logger.debug(
            f"Showing highlight for row {geometry.row_id} ({len(geometry.polyline)} point(s))"
        )
        self.geometry = geometry
        self.events.append(("show", geometry.row_id))

    def hide(self) -> None:
        row_id = self.geometry.row_id if self.geometry is not None else None
        self.geometry = None
        self.events.append(("hide", row_id))
