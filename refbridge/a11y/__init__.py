"""Accessibility tree: role/name resolution, snapshots and structural analysis."""

from .aria import AriaResolver, get_test_id
from .snapshot import AXNode, SnapshotBuilder, WalkItem, WalkKind
from .structure import StructuralAnalyzer

__all__ = [
    "AXNode",
    "AriaResolver",
    "SnapshotBuilder",
    "StructuralAnalyzer",
    "WalkItem",
    "WalkKind",
    "get_test_id",
]
