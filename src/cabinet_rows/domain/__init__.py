"""Domain layer - rows, reveal layout and reflow."""

from .entities import Membership, Row
from .errors import InvalidSelectionError, RowError
from .services import (
    MembershipService,
    ReflowEngine,
    RevealCalculator,
    RowHighlighter,
    RowRegistry,
    SelectionBridge,
)
from .value_objects import (
    DEFAULT_ROW_REVEAL_MM,
    LEGACY_EDGE_REVEAL_MM,
    MIN_MEMBER_WIDTH_MM,
    BoundaryGap,
    BoundaryKind,
    HighlightGeometry,
    MemberExtent,
    Point3D,
    ReflowScope,
    RowLayout,
)

__all__ = [
    "BoundaryGap",
    "BoundaryKind",
    "DEFAULT_ROW_REVEAL_MM",
    "HighlightGeometry",
    "InvalidSelectionError",
    "LEGACY_EDGE_REVEAL_MM",
    "MIN_MEMBER_WIDTH_MM",
    "MemberExtent",
    "Membership",
    "MembershipService",
    "Point3D",
    "ReflowEngine",
    "ReflowScope",
    "RevealCalculator",
    "Row",
    "RowError",
    "RowHighlighter",
    "RowLayout",
    "RowRegistry",
    "SelectionBridge",
]
