"""CDP plumbing: session pool, bridge injection and per-frame bridges."""

from .bridge import FrameBridge
from .injector import BridgeInjector, RemoteObject
from .sessions import CDPSessionPool, is_foreign_frame_error

__all__ = [
    "BridgeInjector",
    "CDPSessionPool",
    "FrameBridge",
    "RemoteObject",
    "is_foreign_frame_error",
]
