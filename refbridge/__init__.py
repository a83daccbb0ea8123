"""
RefBridge - stable element refs for browser agents.

RefBridge renders live pages as ref-annotated accessibility snapshots and
keeps those refs valid across snapshots, frames and isolated browser roles.
"""

__version__ = "0.1.0"

from .core import (
    AncestorLevelTooHighError,
    BridgeInjectionError,
    FailureLog,
    InvalidRefFormatError,
    MultiRoleBrowser,
    NavigationError,
    RefBridgeError,
    StaleRefError,
    UnknownRefError,
)

from .refs import ElementRegistry, GlobalRefIndex, RefFormatter

from .types import (
    AncestorsResult,
    BridgeConfig,
    DescendantsResult,
    InspectResult,
    NavigationInfo,
    RoleConfig,
    SiblingsResult,
    SnapshotResult,
)

__all__ = [
    # Version
    "__version__",
    # Main classes
    "MultiRoleBrowser",
    "ElementRegistry",
    "GlobalRefIndex",
    "RefFormatter",
    "FailureLog",
    # Common types
    "AncestorsResult",
    "BridgeConfig",
    "DescendantsResult",
    "InspectResult",
    "NavigationInfo",
    "RoleConfig",
    "SiblingsResult",
    "SnapshotResult",
    # Common errors
    "RefBridgeError",
    "UnknownRefError",
    "StaleRefError",
    "InvalidRefFormatError",
    "AncestorLevelTooHighError",
    "BridgeInjectionError",
    "NavigationError",
]
