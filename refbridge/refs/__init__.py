"""Element refs: allocation, cross-frame formatting and indexing."""

from .formatter import ParsedRef, RefFormatter
from .index import GlobalRefIndex, RefIndexEntry
from .registry import ElementHandleEntry, ElementRegistry

__all__ = [
    "ElementHandleEntry",
    "ElementRegistry",
    "GlobalRefIndex",
    "ParsedRef",
    "RefFormatter",
    "RefIndexEntry",
]
