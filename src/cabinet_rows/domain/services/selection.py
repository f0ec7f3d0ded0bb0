"""Selection bridge: optionally expand a single-member selection to its row."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .registry import RowRegistry

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import PlacedObjectProtocol, SelectionProtocol

logger = logging.getLogger(__name__)


@dataclass
class _Expansion:
    row_id: str
    added_ids: list[int] = field(default_factory=list)


class SelectionBridge:
    """Auto-select-row behavior layered on the registry.

    While enabled, selecting exactly one row member expands the selection
    to every member of that row. Selections spanning several rows, or
    mixing row and non-row objects, are never expanded; if a selection
    grows to span several rows after an expansion, the members the bridge
    added are removed again. The registry is only read, never mutated.
    """

    def __init__(self, registry: RowRegistry, enabled: bool = False) -> None:
        self.registry = registry
        self._enabled = False
        self._updating = False
        self._expansion: _Expansion | None = None
        self._observed: SelectionProtocol | None = None
        if enabled:
            self.set_auto_select_row(True)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_auto_select_row(self, enabled: bool) -> bool:
        """Toggle the preference and (de)register the selection observer."""
        self._enabled = bool(enabled)
        selection = self.registry.model.selection
        if self._enabled and self._observed is None:
            selection.add_observer(self.handle_selection_change)
            self._observed = selection
        elif not self._enabled and self._observed is not None:
            self._observed.remove_observer(self.handle_selection_change)
            self._observed = None
            self._expansion = None
        logger.debug(f"Auto-select row {'enabled' if self._enabled else 'disabled'}")
        return self._enabled

    def reset(self) -> None:
        self.set_auto_select_row(False)
        self._updating = False
        self._expansion = None

    def handle_selection_change(self, selection: SelectionProtocol | None = None) -> None:
        """Observer entry point, called after every selection change."""
        if not self._enabled or self._updating:
            return
        if selection is None:
            selection = self.registry.model.selection

        instances = [obj for obj in selection if obj.is_valid()]
        if not instances:
            self._expansion = None
            return

        row_ids = set()
        for obj in instances:
            membership = self.registry.for_instance(obj)
            if membership is not None:
                row_ids.add(membership.row_id)

        if len(row_ids) > 1:
            self._prune_auto_added(selection)
            return

        if len(selection) != 1:
            return

        membership = self.registry.for_instance(instances[0])
        if membership is None:
            return

        row = self.registry.find_row(membership.row_id)
        if row is None:
            return
        targets = self.registry.resolve_members(row)
        current_ids = sorted(obj.persistent_id for obj in instances)
        target_ids = sorted(obj.persistent_id for obj in targets)
        if not targets or current_ids == target_ids:
            return

        self._replace_selection(selection, targets)
        self._expansion = _Expansion(
            row_id=membership.row_id,
            added_ids=[pid for pid in target_ids if pid not in current_ids],
        )
        logger.debug(f"Expanded selection to {len(targets)} member(s) of row {row.row_id}")

    def _replace_selection(
        self, selection: SelectionProtocol, targets: list[PlacedObjectProtocol]
    ) -> None:
        self._updating = True
        try:
            selection.clear()
            for obj in targets:
                selection.add(obj)
        finally:
            self._updating = False

    def _prune_auto_added(self, selection: SelectionProtocol) -> None:
        expansion = self._expansion
        self._expansion = None
        if expansion is None or not expansion.added_ids:
            return

        model = self.registry.model
        to_remove = []
        for pid in expansion.added_ids:
            entity = model.find_entity_by_persistent_id(pid)
            if entity is not None and entity in selection:
                to_remove.append(entity)

        self._updating = True
        try:
            for entity in to_remove:
                selection.remove(entity)
        finally:
            self._updating = False
