"""Application layer - use cases and orchestration."""

from .commands import (
    CreateRowCommand,
    EditRowMembersCommand,
    ReflowRowCommand,
    RowQueryCommand,
    UpdateRowCommand,
)
from .factory import ServiceFactory
from .snapshots import RowSnapshotBuilder

__all__ = [
    "CreateRowCommand",
    "EditRowMembersCommand",
    "ReflowRowCommand",
    "RowQueryCommand",
    "RowSnapshotBuilder",
    "ServiceFactory",
    "UpdateRowCommand",
]
