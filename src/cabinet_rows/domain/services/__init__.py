"""Domain services for rows: registry, membership, reveal, reflow, selection."""

from .highlight import RowHighlighter, build_geometry
from .membership import MembershipService
from .reflow import ReflowEngine, ReflowPlan, normalize_scope
from .registry import RowRegistry
from .reveal import RevealCalculator
from .selection import SelectionBridge

__all__ = [
    "MembershipService",
    "ReflowEngine",
    "ReflowPlan",
    "RevealCalculator",
    "RowHighlighter",
    "RowRegistry",
    "SelectionBridge",
    "build_geometry",
    "normalize_scope",
]
