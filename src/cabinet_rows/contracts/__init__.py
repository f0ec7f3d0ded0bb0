"""Contracts module - host capability protocols.

By depending on protocols rather than a concrete host, the row engine can
run against the in-memory model in tests and against any other host that
implements the same capabilities.

Example:
    ```python
    from cabinet_rows.contracts import HostModelProtocol

    def count_cabinets(model: HostModelProtocol) -> int:
        return sum(1 for entity in model.entities() if entity.is_cabinet())
    ```
"""

from .protocols import (
    HighlightProviderProtocol as HighlightProviderProtocol,
    HostModelProtocol as HostModelProtocol,
    PlacedObjectProtocol as PlacedObjectProtocol,
    RegistryStoreProtocol as RegistryStoreProtocol,
    SelectionProtocol as SelectionProtocol,
)

__all__ = [
    "HighlightProviderProtocol",
    "HostModelProtocol",
    "PlacedObjectProtocol",
    "RegistryStoreProtocol",
    "SelectionProtocol",
]

from .dtos import (
    MemberSnapshot as MemberSnapshot,
    RowOperationOutput as RowOperationOutput,
    RowSnapshot as RowSnapshot,
)

__all__ += ["MemberSnapshot", "RowOperationOutput", "RowSnapshot"]
