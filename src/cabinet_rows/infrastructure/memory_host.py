"""In-memory host model.

Implements every host capability the row engine consumes: placed cabinets
with persistent ids and shared definitions, attribute dictionaries on
objects and on the model, a selection with observers, and transactions
where each committed operation is one undo step.

Object handles are thin: all state lives in the model, so undo, redo and
abort can restore a snapshot without invalidating handles held by callers.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from cabinet_rows.domain.value_objects import Point3D

logger = logging.getLogger(__name__)


class OperationError(RuntimeError):
    """Raised on misuse of the transaction API (nesting, commit without start)."""


@dataclass
class CabinetDefinition:
    """Shared geometry definition. Width is the extent along the row axis."""

    definition_id: str
    width_mm: float
    depth_mm: float = 600.0
    height_mm: float = 720.0
    is_cabinet: bool = True
    name: str = ""


@dataclass
class _EntityState:
    definition_id: str
    origin: Point3D
    locked: bool = False
    erased: bool = False
    attributes: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class _Snapshot:
    definitions: dict[str, CabinetDefinition]
    entities: dict[int, _EntityState]
    attributes: dict[str, dict[str, Any]]
    next_pid: int
    next_definition: int


@dataclass
class UndoStep:
    """One committed operation: the states before and after it."""

    name: str
    before: _Snapshot
    after: _Snapshot


class PlacedCabinet:
    """Handle to a placed cabinet in an ``InMemoryModel``."""

    def __init__(self, model: InMemoryModel, persistent_id: int) -> None:
        self._model = model
        self._pid = persistent_id

    def __repr__(self) -> str:
        return f"PlacedCabinet(persistent_id={self._pid})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlacedCabinet):
            return NotImplemented
        return self._model is other._model and self._pid == other._pid

    def __hash__(self) -> int:
        return hash((id(self._model), self._pid))

    @property
    def _state(self) -> _EntityState:
        state = self._model._entities.get(self._pid)
        if state is None or state.erased:
            raise ReferenceError(f"Cabinet {self._pid} has been erased")
        return state

    @property
    def persistent_id(self) -> int:
        return self._pid

    @property
    def definition_id(self) -> str:
        return self._state.definition_id

    @property
    def definition(self) -> CabinetDefinition:
        return self._model._definitions[self.definition_id]

    @property
    def locked(self) -> bool:
        return self._state.locked

    @locked.setter
    def locked(self, value: bool) -> None:
        self._state.locked = bool(value)

    @property
    def origin(self) -> Point3D:
        return self._state.origin

    def is_valid(self) -> bool:
        state = self._model._entities.get(self._pid)
        return state is not None and not state.erased

    def is_cabinet(self) -> bool:
        return self.is_valid() and self.definition.is_cabinet

    def position_along_axis(self) -> float:
        return self._state.origin.x

    def width_along_axis(self) -> float:
        return self.definition.width_mm

    def move_along_axis(self, position_mm: float) -> None:
        state = self._state
        state.origin = Point3D(float(position_mm), state.origin.y, state.origin.z)

    def move_to(self, origin: Point3D) -> None:
        self._state.origin = origin

    def set_width(self, width_mm: float) -> None:
        if width_mm <= 0:
            raise ValueError("Width must be positive")
        self.definition.width_mm = float(width_mm)

    def make_unique(self) -> None:
        """Copy the definition if any other live object shares it."""
        if self._model.instance_count(self.definition_id) <= 1:
            return
        clone = self._model.copy_definition(self.definition_id)
        self._state.definition_id = clone.definition_id

    def get_attribute(self, dictionary: str, key: str, default: Any = None) -> Any:
        return self._state.attributes.get(dictionary, {}).get(key, default)

    def set_attribute(self, dictionary: str, key: str, value: Any) -> None:
        self._state.attributes.setdefault(dictionary, {})[key] = value

    def delete_attribute(self, dictionary: str, key: str) -> None:
        attributes = self._state.attributes
        entries = attributes.get(dictionary)
        if entries is None:
            return
        entries.pop(key, None)
        if not entries:
            del attributes[dictionary]

    def attribute_dictionaries(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._state.attributes)

    def erase(self) -> None:
        self._model.erase(self)


class InMemorySelection:
    """Ordered selection set that notifies observers after each change."""

    def __init__(self) -> None:
        self._items: list[PlacedCabinet] = []
        self._observers: list[Callable[[InMemorySelection], None]] = []

    def __iter__(self) -> Iterator[PlacedCabinet]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def add(self, item: PlacedCabinet) -> None:
        if item in self._items:
            return
        self._items.append(item)
        self._notify()

    def remove(self, item: PlacedCabinet) -> None:
        if item not in self._items:
            return
        self._items.remove(item)
        self._notify()

    def clear(self) -> None:
        if not self._items:
            return
        self._items.clear()
        self._notify()

    def replace(self, items: list[PlacedCabinet]) -> None:
        """Set the whole selection at once, notifying observers once."""
        self._items = []
        for item in items:
            if item not in self._items:
                self._items.append(item)
        self._notify()

    def add_observer(self, callback: Callable[[InMemorySelection], None]) -> None:
        if callback not in self._observers:
            self._observers.append(callback)

    def remove_observer(self, callback: Callable[[InMemorySelection], None]) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._observers):
            callback(self)


class InMemoryModel:
    """A host document kept entirely in memory.

    Example:
        ```python
        model = InMemoryModel()
        left = model.place_cabinet(600.0, x=0.0)
        right = model.place_cabinet(400.0, x=600.0)
        model.start_operation("Move")
        right.move_along_axis(650.0)
        model.commit_operation()
        model.undo()
        right.position_along_axis()  # 600.0
        ```
    """

    def __init__(self) -> None:
        self._definitions: dict[str, CabinetDefinition] = {}
        self._entities: dict[int, _EntityState] = {}
        self._attributes: dict[str, dict[str, Any]] = {}
        self._handles: dict[int, PlacedCabinet] = {}
        self._next_pid = 1
        self._next_definition = 1
        self._selection = InMemorySelection()
        self._open: tuple[str, _Snapshot] | None = None
        self._undo: list[UndoStep] = []
        self._redo: list[UndoStep] = []

    # ------------------------------------------------------------------
    # Definitions and entities
    # ------------------------------------------------------------------

    def add_definition(
        self,
        width_mm: float,
        *,
        definition_id: str | None = None,
        is_cabinet: bool = True,
        depth_mm: float = 600.0,
        height_mm: float = 720.0,
        name: str = "",
    ) -> CabinetDefinition:
        if width_mm <= 0:
            raise ValueError("Definition width must be positive")
        if definition_id is None:
            definition_id = self._new_definition_id()
        elif definition_id in self._definitions:
            raise ValueError(f"Definition {definition_id!r} already exists")
        definition = CabinetDefinition(
            definition_id=definition_id,
            width_mm=float(width_mm),
            depth_mm=depth_mm,
            height_mm=height_mm,
            is_cabinet=is_cabinet,
            name=name,
        )
        self._definitions[definition_id] = definition
        return definition

    def get_definition(self, definition_id: str) -> CabinetDefinition:
        return self._definitions[definition_id]

    def definitions(self) -> list[CabinetDefinition]:
        return list(self._definitions.values())

    def copy_definition(self, definition_id: str) -> CabinetDefinition:
        source = self._definitions[definition_id]
        clone = copy.deepcopy(source)
        clone.definition_id = self._new_definition_id()
        self._definitions[clone.definition_id] = clone
        return clone

    def place(
        self,
        definition_id: str,
        x: float = 0.0,
        y: float = 0.0,
        z: float = 0.0,
        *,
        locked: bool = False,
        persistent_id: int | None = None,
    ) -> PlacedCabinet:
        if definition_id not in self._definitions:
            raise KeyError(f"Unknown definition {definition_id!r}")
        if persistent_id is None:
            persistent_id = self._next_pid
        elif persistent_id in self._entities:
            raise ValueError(f"Persistent id {persistent_id} already in use")
        self._next_pid = max(self._next_pid, persistent_id + 1)
        self._entities[persistent_id] = _EntityState(
            definition_id=definition_id,
            origin=Point3D(float(x), float(y), float(z)),
            locked=locked,
        )
        return self._handle(persistent_id)

    def place_cabinet(
        self,
        width_mm: float,
        x: float = 0.0,
        y: float = 0.0,
        z: float = 0.0,
        *,
        is_cabinet: bool = True,
        locked: bool = False,
    ) -> PlacedCabinet:
        """Create a definition and place one instance of it."""
        definition = self.add_definition(width_mm, is_cabinet=is_cabinet)
        return self.place(definition.definition_id, x, y, z, locked=locked)

    def find_entity_by_persistent_id(self, persistent_id: int) -> PlacedCabinet | None:
        state = self._entities.get(persistent_id)
        if state is None or state.erased:
            return None
        return self._handle(persistent_id)

    def entities(self) -> list[PlacedCabinet]:
        return [
            self._handle(pid)
            for pid, state in self._entities.items()
            if not state.erased
        ]

    def erase(self, entity: PlacedCabinet) -> None:
        state = self._entities.get(entity.persistent_id)
        if state is not None:
            state.erased = True
        if entity in self._selection:
            self._selection.remove(entity)

    def instance_count(self, definition_id: str) -> int:
        return sum(
            1
            for state in self._entities.values()
            if not state.erased and state.definition_id == definition_id
        )

    @property
    def selection(self) -> InMemorySelection:
        return self._selection

    # ------------------------------------------------------------------
    # Model attributes
    # ------------------------------------------------------------------

    def get_attribute(self, dictionary: str, key: str, default: Any = None) -> Any:
        return self._attributes.get(dictionary, {}).get(key, default)

    def set_attribute(self, dictionary: str, key: str, value: Any) -> None:
        self._attributes.setdefault(dictionary, {})[key] = value

    def attribute_dictionaries(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._attributes)

    # ------------------------------------------------------------------
    # Transactions and undo
    # ------------------------------------------------------------------

    @property
    def operation_open(self) -> bool:
        return self._open is not None

    @property
    def undo_names(self) -> list[str]:
        return [step.name for step in self._undo]

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def start_operation(self, name: str) -> None:
        if self._open is not None:
            raise OperationError(
                f"Cannot start {name!r}: operation {self._open[0]!r} is still open"
            )
        self._open = (name, self._snapshot())

    def commit_operation(self) -> None:
        if self._open is None:
            raise OperationError("No operation to commit")
        name, before = self._open
        self._open = None
        self._undo.append(UndoStep(name=name, before=before, after=self._snapshot()))
        self._redo.clear()
        logger.debug(f"Committed operation {name!r}")

    def abort_operation(self) -> None:
        if self._open is None:
            raise OperationError("No operation to abort")
        name, before = self._open
        self._open = None
        self._restore(before)
        logger.debug(f"Aborted operation {name!r}")

    def undo(self) -> str:
        """Revert the last committed operation. Returns its name."""
        if self._open is not None:
            raise OperationError("Cannot undo while an operation is open")
        if not self._undo:
            raise OperationError("Nothing to undo")
        step = self._undo.pop()
        self._restore(step.before)
        self._redo.append(step)
        return step.name

    def redo(self) -> str:
        """Reapply the last undone operation. Returns its name."""
        if self._open is not None:
            raise OperationError("Cannot redo while an operation is open")
        if not self._redo:
            raise OperationError("Nothing to redo")
        step = self._redo.pop()
        self._restore(step.after)
        self._undo.append(step)
        return step.name

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle(self, persistent_id: int) -> PlacedCabinet:
        handle = self._handles.get(persistent_id)
        if handle is None:
            handle = PlacedCabinet(self, persistent_id)
            self._handles[persistent_id] = handle
        return handle

    def _new_definition_id(self) -> str:
        while True:
            candidate = f"def-{self._next_definition}"
            self._next_definition += 1
            if candidate not in self._definitions:
                return candidate

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            definitions=copy.deepcopy(self._definitions),
            entities=copy.deepcopy(self._entities),
            attributes=copy.deepcopy(self._attributes),
            next_pid=self._next_pid,
            next_definition=self._next_definition,
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        self._definitions = copy.deepcopy(snapshot.definitions)
        self._entities = copy.deepcopy(snapshot.entities)
        self._attributes = copy.deepcopy(snapshot.attributes)
        self._next_pid = snapshot.next_pid
        self._next_definition = snapshot.next_definition
