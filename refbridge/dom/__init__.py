"""Captured DOM model and the injectable bridge bundle."""

from .nodes import DomDocument, DomNode, NodeKind
from .scripts import BRIDGE_BUNDLE, BRIDGE_VERSION

__all__ = [
    "BRIDGE_BUNDLE",
    "BRIDGE_VERSION",
    "DomDocument",
    "DomNode",
    "NodeKind",
]
