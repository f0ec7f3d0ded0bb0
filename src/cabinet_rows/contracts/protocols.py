"""Host capability protocols for dependency injection.

The row engine never owns the placed objects it arranges. These protocols
describe what it needs from the host application: placed objects with a
persistent id and an extent along the row axis, a document-scoped
attribute store, a selection, transactions that form one undo step, and a
pluggable highlight provider. Infrastructure implementations depend on
these protocols, so tests can swap in the in-memory host.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cabinet_rows.domain.entities import Row
    from cabinet_rows.domain.value_objects import HighlightGeometry, Point3D


@runtime_checkable
class PlacedObjectProtocol(Protocol):
    """A placed cabinet instance owned by the host.

    Width is a property of the object's definition. Several objects may
    share one definition; writing the width of one of them changes all of
    them until ``make_unique`` breaks the link.

    Example:
        ```python
        cabinet.make_unique()
        cabinet.set_width(450.0)
        cabinet.move_along_axis(1203.0)
        ```
    """

    @property
    def persistent_id(self) -> int:
        """Stable id that survives geometry regeneration."""
        ...

    @property
    def definition_id(self) -> str:
        """Id of the shared definition this object instantiates."""
        ...

    @property
    def locked(self) -> bool:
        """True if the user locked the object against edits."""
        ...

    @property
    def origin(self) -> Point3D:
        """Front-left-bottom corner of the object's bounding box."""
        ...

    def is_valid(self) -> bool:
        """False once the object has been erased."""
        ...

    def is_cabinet(self) -> bool:
        """True if the object is a placeable cabinet that may join a row."""
        ...

    def position_along_axis(self) -> float:
        """Start of the object along the row axis, in millimeters."""
        ...

    def width_along_axis(self) -> float:
        """Extent of the object along the row axis, in millimeters."""
        ...

    def move_along_axis(self, position_mm: float) -> None:
        """Translate the object so its start sits at ``position_mm``."""
        ...

    def set_width(self, width_mm: float) -> None:
        """Write a new width to the object's definition."""
        ...

    def make_unique(self) -> None:
        """Give the object its own copy of its definition."""
        ...

    def get_attribute(self, dictionary: str, key: str, default: Any = None) -> Any:
        ...

    def set_attribute(self, dictionary: str, key: str, value: Any) -> None:
        ...

    def delete_attribute(self, dictionary: str, key: str) -> None:
        ...


class SelectionProtocol(Protocol):
    """The host's current selection set."""

    def __iter__(self) -> Iterator[PlacedObjectProtocol]:
        ...

    def __len__(self) -> int:
        ...

    def __contains__(self, item: object) -> bool:
        ...

    def add(self, item: PlacedObjectProtocol) -> None:
        ...

    def remove(self, item: PlacedObjectProtocol) -> None:
        ...

    def clear(self) -> None:
        ...

    def add_observer(self, callback: Callable[[SelectionProtocol], None]) -> None:
        ...

    def remove_observer(self, callback: Callable[[SelectionProtocol], None]) -> None:
        ...


class HostModelProtocol(Protocol):
    """The host document: object lookup, attribute storage and transactions.

    Every public engine operation runs between ``start_operation`` and
    ``commit_operation`` so it forms exactly one undo step. On failure the
    engine calls ``abort_operation``, which must restore the state captured
    at ``start_operation``.
    """

    @property
    def selection(self) -> SelectionProtocol:
        ...

    def find_entity_by_persistent_id(
        self, persistent_id: int
    ) -> PlacedObjectProtocol | None:
        ...

    def entities(self) -> Iterable[PlacedObjectProtocol]:
        """All live placed objects in the document."""
        ...

    def get_attribute(self, dictionary: str, key: str, default: Any = None) -> Any:
        ...

    def set_attribute(self, dictionary: str, key: str, value: Any) -> None:
        ...

    def start_operation(self, name: str) -> None:
        ...

    def commit_operation(self) -> None:
        ...

    def abort_operation(self) -> None:
        ...


class RegistryStoreProtocol(Protocol):
    """Reads and writes the persisted registry document of a host model."""

    def load(self, model: HostModelProtocol) -> tuple[dict[str, Row], bool]:
        """Load all rows.

        Returns:
            Rows keyed by row id, and True if the stored document needed
            repair or migration.
        """
        ...

    def save(self, model: HostModelProtocol, rows: dict[str, Row]) -> None:
        ...


class HighlightProviderProtocol(Protocol):
    """Visualization backend for row highlights.

    The engine computes geometry and hands it over; the provider owns any
    on-screen state.
    """

    def show(self, geometry: HighlightGeometry) -> None:
        ...

    def hide(self) -> None:
        ...
