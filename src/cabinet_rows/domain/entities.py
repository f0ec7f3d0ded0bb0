"""Domain entities for cabinet rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .value_objects import DEFAULT_ROW_REVEAL_MM


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass
class Row:
    """An ordered group of placed cabinets laid out along the row axis.

    Attributes:
        row_id: Opaque unique id, stable for the row's lifetime.
        member_ids: Persistent ids of the members in spatial order.
        row_reveal_mm: Target gap between members and at both row ends.
        lock_total_length: When True, width edits are absorbed by the filler
            member so the row span stays at ``total_length_mm``.
        total_length_mm: Locked span, or None when the row is unlocked.
        created_at: ISO-8601 creation timestamp (UTC).
        updated_at: ISO-8601 timestamp of the last change (UTC).
    """

    row_id: str
    member_ids: list[int] = field(default_factory=list)
    row_reveal_mm: float = DEFAULT_ROW_REVEAL_MM
    lock_total_length: bool = False
    total_length_mm: float | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        if not self.row_id:
            raise ValueError("row_id must be a non-empty string")
        if len(set(self.member_ids)) != len(self.member_ids):
            raise ValueError(f"Row {self.row_id} has duplicate member ids")
        if self.row_reveal_mm < 0:
            raise ValueError("row_reveal_mm cannot be negative")

    @property
    def is_empty(self) -> bool:
        return not self.member_ids

    def __contains__(self, persistent_id: object) -> bool:
        return persistent_id in self.member_ids

    def position_of(self, persistent_id: int) -> int | None:
        """1-based position of a member, or None if it is not in the row."""
        try:
            return self.member_ids.index(persistent_id) + 1
        except ValueError:
            return None

    def positions(self) -> dict[int, int]:
        """Map of persistent id to 1-based row position."""
        return {pid: index for index, pid in enumerate(self.member_ids, start=1)}

    def append(self, persistent_id: int) -> bool:
        """Append a member. Returns False if it was already present."""
        if persistent_id in self.member_ids:
            return False
        self.member_ids.append(persistent_id)
        return True

    def discard(self, persistent_id: int) -> bool:
        """Remove a member. Returns False if it was not present."""
        if persistent_id not in self.member_ids:
            return False
        self.member_ids.remove(persistent_id)
        return True

    def touch(self) -> None:
        self.updated_at = utc_timestamp()


@dataclass(frozen=True)
class Membership:
    """A validated association between a placed object and a row."""

    row_id: str
    row_pos: int
