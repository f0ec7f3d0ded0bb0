"""Row registry: the canonical store of rows and their membership.

The registry document persisted on the host model is the only source of
truth for "is this object a member of that row". Each member also carries
``row_id`` / ``row_pos`` cache attributes for fast lookup, but those are
always revalidated against the registry before being trusted.

Deleted members are pruned lazily: every load re-resolves member ids
against the host and drops the ones whose object is gone. Loading never
writes; repairs reach the host with the next ``save``, which mutators
only call inside a host operation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..entities import Membership, Row
from ..errors import RowError

if TYPE_CHECKING:
    from cabinet_rows.contracts.protocols import (
        HostModelProtocol,
        PlacedObjectProtocol,
        RegistryStoreProtocol,
    )

logger = logging.getLogger(__name__)

# Per-object membership cache.
MEMBERSHIP_DICTIONARY = "cabinet_rows.membership"
ROW_ID_KEY = "row_id"
ROW_POS_KEY = "row_pos"


class RowRegistry:
    """Loads, repairs and saves the rows of one host model.

    Args:
        model: Host document holding the registry and the placed objects.
        store: Codec for the persisted registry document.
    """

    def __init__(self, model: HostModelProtocol, store: RegistryStoreProtocol) -> None:
        self.model = model
        self.store = store

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load(self) -> dict[str, Row]:
        """Load all rows, pruning members whose objects are no longer live.

        Repairs found while loading (migration, sanitizing, pruning) are
        applied to the returned rows only. The host document and the cache
        attributes are left untouched until the rows are saved.
        """
        rows, changed = self.store.load(self.model)
        changed |= self._prune(rows)
        if changed:
            logger.debug(f"Registry repaired in memory, {len(rows)} row(s) remain")
        return rows

    def list_rows(self) -> list[Row]:
        return list(self.load().values())

    def find_row(self, row_id: str) -> Row | None:
        return self.load().get(row_id)

    def get_row(self, row_id: str) -> Row:
        """Return a row or raise ``RowError(unknown_row)``."""
        row = self.find_row(row_id)
        if row is None:
            raise RowError("unknown_row", f"Row {row_id!r} not found.")
        return row

    def resolve_members(self, row: Row) -> list[PlacedObjectProtocol]:
        """Live member objects of a row, in row order. Dead ids are skipped."""
        members: list[PlacedObjectProtocol] = []
        for pid in row.member_ids:
            entity = self._live_cabinet(pid)
            if entity is not None:
                members.append(entity)
        return members

    @staticmethod
    def row_id_of(rows: dict[str, Row], persistent_id: int) -> str | None:
        """Id of the row that lists ``persistent_id``, if any."""
        for row_id, row in rows.items():
            if persistent_id in row:
                return row_id
        return None

    def for_instance(self, obj: PlacedObjectProtocol | None) -> Membership | None:
        """Validated membership of an object, or None.

        The object's cached ``row_id`` is only a hint: the row must exist in
        the registry and list this object's persistent id. Attributes stamped
        out of band, or copied onto a duplicate, never grant membership.
        """
        if obj is None or not obj.is_valid():
            return None

        hinted = obj.get_attribute(MEMBERSHIP_DICTIONARY, ROW_ID_KEY)
        if not isinstance(hinted, str) or not hinted:
            return None

        row = self.load().get(hinted)
        if row is None:
            return None
        position = row.position_of(obj.persistent_id)
        if position is None:
            return None
        return Membership(row_id=row.row_id, row_pos=position)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def save(self, rows: dict[str, Row]) -> None:
        """Persist rows and bring every object's cache attributes in line."""
        for row_id in [row_id for row_id, row in rows.items() if row.is_empty]:
            del rows[row_id]
        self.store.save(self.model, rows)
        self._sync_cache(rows)

    def clear_cache(self, obj: PlacedObjectProtocol) -> None:
        obj.delete_attribute(MEMBERSHIP_DICTIONARY, ROW_ID_KEY)
        obj.delete_attribute(MEMBERSHIP_DICTIONARY, ROW_POS_KEY)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_cabinet(self, persistent_id: int) -> PlacedObjectProtocol | None:
        entity = self.model.find_entity_by_persistent_id(persistent_id)
        if entity is None or not entity.is_valid() or not entity.is_cabinet():
            return None
        return entity

    def _prune(self, rows: dict[str, Row]) -> bool:
        """Drop dead or duplicated member ids and delete rows left empty."""
        changed = False
        claimed: set[int] = set()

        for row_id in list(rows):
            row = rows[row_id]
            kept: list[int] = []
            for pid in row.member_ids:
                if pid in claimed:
                    logger.warning(
                        f"Object {pid} listed in more than one row; keeping it in the first"
                    )
                    continue
                if self._live_cabinet(pid) is None:
                    continue
                kept.append(pid)
            claimed.update(kept)

            if not kept:
                logger.debug(f"Deleting row {row_id}: no live members remain")
                del rows[row_id]
                changed = True
                continue

            if kept != row.member_ids:
                logger.debug(
                    f"Pruned {len(row.member_ids) - len(kept)} member(s) from row {row_id}"
                )
                row.member_ids = kept
                row.touch()
                changed = True

        return changed

    def _sync_cache(self, rows: dict[str, Row]) -> None:
        """Stamp row_id/row_pos on members and strip it from everything else."""
        expected: dict[int, tuple[str, int]] = {}
        for row_id, row in rows.items():
            for pid, position in row.positions().items():
                expected[pid] = (row_id, position)

        for entity in self._entities():
            pid = entity.persistent_id
            if pid in expected:
                row_id, position = expected[pid]
                if entity.get_attribute(MEMBERSHIP_DICTIONARY, ROW_ID_KEY) != row_id:
                    entity.set_attribute(MEMBERSHIP_DICTIONARY, ROW_ID_KEY, row_id)
                if entity.get_attribute(MEMBERSHIP_DICTIONARY, ROW_POS_KEY) != position:
                    entity.set_attribute(MEMBERSHIP_DICTIONARY, ROW_POS_KEY, position)
            elif (
                entity.get_attribute(MEMBERSHIP_DICTIONARY, ROW_ID_KEY) is not None
                or entity.get_attribute(MEMBERSHIP_DICTIONARY, ROW_POS_KEY) is not None
            ):
                self.clear_cache(entity)

    def _entities(self) -> Iterable[PlacedObjectProtocol]:
        return [entity for entity in self.model.entities() if entity.is_valid()]
