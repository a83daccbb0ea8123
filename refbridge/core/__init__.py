"""Core RefBridge components."""

from .errors import (
    AncestorLevelTooHighError,
    BridgeInjectionError,
    BridgeVersionMismatchError,
    BrowserNotAvailableError,
    CDPError,
    ConfigurationError,
    InvalidArgumentError,
    InvalidRefFormatError,
    NavigationError,
    RefBridgeError,
    RefError,
    RoleError,
    StaleRefError,
    UnknownRefError,
)
from .failures import FailureLog, FrameExpansionFailure, FrameInjectionFailure, classify_frame_error
from .role_context import RoleContext, RoleState
from .browser import MultiRoleBrowser

__all__ = [
    # Main classes
    "MultiRoleBrowser",
    "RoleContext",
    "RoleState",
    # Failure log
    "FailureLog",
    "FrameExpansionFailure",
    "FrameInjectionFailure",
    "classify_frame_error",
    # Errors
    "AncestorLevelTooHighError",
    "BridgeInjectionError",
    "BridgeVersionMismatchError",
    "BrowserNotAvailableError",
    "CDPError",
    "ConfigurationError",
    "InvalidArgumentError",
    "InvalidRefFormatError",
    "NavigationError",
    "RefBridgeError",
    "RefError",
    "RoleError",
    "StaleRefError",
    "UnknownRefError",
]
