"""Value objects for row layout and reflow."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

# Default gap maintained between members and at the row ends.
DEFAULT_ROW_REVEAL_MM = 2.0

# Fixed edge reveal used at boundaries touching a member that opted out
# of the row reveal.
LEGACY_EDGE_REVEAL_MM = 2.0

# Smallest width a filler member may be reduced to while the row length is locked.
MIN_MEMBER_WIDTH_MM = 25.0

# Maximum cross-axis spread for a selection to count as a single row.
COLLINEAR_TOLERANCE_MM = 0.5

# Half-length of the origin marker segments drawn by the row highlight.
ORIGIN_MARKER_SIZE_MM = 50.0


class ReflowScope(str, Enum):
    """How far a width change propagates across shared definitions."""

    INSTANCE_ONLY = "instance_only"
    ALL_INSTANCES = "all_instances"


class BoundaryKind(str, Enum):
    """Which rule produced the gap at a row boundary."""

    ROW_REVEAL = "row_reveal"
    LEGACY = "legacy"


@dataclass(frozen=True)
class Point3D:
    """A point in model space, in millimeters.

    The row axis is X. Y and Z are only used for collinearity checks and
    highlight geometry.
    """

    x: float
    y: float
    z: float

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> Point3D:
        """Return a copy translated by the given deltas."""
        return Point3D(self.x + dx, self.y + dy, self.z + dz)


@dataclass(frozen=True)
class MemberExtent:
    """A member's contribution to the row layout.

    Attributes:
        persistent_id: Stable id of the placed object.
        width_mm: Current extent along the row axis.
        use_row_reveal: False if boundaries touching this member fall back
            to the legacy edge reveal.
    """

    persistent_id: int
    width_mm: float
    use_row_reveal: bool = True

    def __post_init__(self) -> None:
        if not math.isfinite(self.width_mm) or self.width_mm <= 0:
            raise ValueError("Member width must be a positive finite number")


@dataclass(frozen=True)
class BoundaryGap:
    """Gap at one row boundary.

    Index 0 is the left row end; index N is the right row end for a row
    of N members.
    """

    index: int
    gap_mm: float
    kind: BoundaryKind


@dataclass(frozen=True)
class RowLayout:
    """Result of the reveal calculation for an ordered list of members.

    Offsets are measured from the row origin, which sits one boundary gap
    to the left of the first member.
    """

    offsets_mm: tuple[float, ...] = field(default_factory=tuple)
    gaps: tuple[BoundaryGap, ...] = field(default_factory=tuple)
    total_span_mm: float = 0.0

    @property
    def is_empty(self) -> bool:
        return len(self.offsets_mm) == 0

    @property
    def leading_gap_mm(self) -> float:
        """Gap between the row origin and the first member."""
        return self.gaps[0].gap_mm if self.gaps else 0.0


@dataclass(frozen=True)
class HighlightGeometry:
    """Outline of a row handed to a highlight provider.

    Attributes:
        row_id: Row the geometry belongs to.
        polyline: Front-left-bottom corner of each live member, in row order.
        origin_segments: Pairs of points forming the origin marker around
            the first polyline point (three axis-aligned segments).
    """

    row_id: str
    polyline: tuple[Point3D, ...] = field(default_factory=tuple)
    origin_segments: tuple[Point3D, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return len(self.polyline) == 0
