"""Type definitions for RefBridge."""

from .browser import BridgeHandle, FrameInfo
from .models import (
    AncestorInfo,
    AncestorTarget,
    AncestorsResult,
    AnchorInfo,
    Bounds,
    BridgeConfig,
    BrowserParams,
    ContainerInfo,
    DescendantInfo,
    DescendantsResult,
    InspectResult,
    NavigationInfo,
    OutlineItem,
    RoleConfig,
    RolesConfiguration,
    SiblingInfo,
    SiblingsResult,
    SnapshotResult,
)

__all__ = [
    "AncestorInfo",
    "AncestorTarget",
    "AncestorsResult",
    "AnchorInfo",
    "Bounds",
    "BridgeConfig",
    "BridgeHandle",
    "BrowserParams",
    "ContainerInfo",
    "DescendantInfo",
    "DescendantsResult",
    "FrameInfo",
    "InspectResult",
    "NavigationInfo",
    "OutlineItem",
    "RoleConfig",
    "RolesConfiguration",
    "SiblingInfo",
    "SiblingsResult",
    "SnapshotResult",
]
