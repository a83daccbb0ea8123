"""Per-document registry mapping refs to captured elements."""

from typing import Dict, Iterable, Iterator, List, Optional, Set, Callable

from pydantic import BaseModel, Field

from ..core.errors import StaleRefError, UnknownRefError
from ..dom.nodes import DomNode


REF_PREFIX = "e"


class ElementHandleEntry(BaseModel):
    """What the registry knows about one referenced element."""
    ref: str
    # Node id of the element inside the frame's isolated world
    element_handle: int
    tag_name: str
    role: str
    name: str = ""
    attributes: Dict[str, str] = Field(default_factory=dict)


class ElementRegistry:
    """
    Allocates refs and remembers which element each ref points to.

    One registry lives for exactly one navigation epoch of one frame of one
    role. Refs are ``e1``, ``e2``, ... in order of first registration, and a
    ref is never handed to a different element, even after its own element
    went away: dropped refs are retired, not recycled.
    """

    def __init__(self, role: Optional[str] = None):
        self.role = role
        self._entries: Dict[str, ElementHandleEntry] = {}
        self._by_handle: Dict[int, str] = {}
        self._retired: Set[str] = set()
        self._counter = 0

    @property
    def counter(self) -> int:
        """Highest ref suffix ever allocated in this epoch."""
        return self._counter

    def register(self, element: DomNode, role: str, name: str) -> str:
        """
        Return the element's ref, allocating the next one on first sight.

        Cached role/name/attributes are refreshed on every call.
        """
        handle = element.node_id
        if handle is None:
            raise ValueError("cannot register a node without a bridge node id")

        ref = self._by_handle.get(handle)
        if ref is not None:
            entry = self._entries[ref]
            entry.tag_name = element.tag
            entry.role = role
            entry.name = name
            entry.attributes = dict(element.attributes)
            return ref

        self._counter += 1
        ref = f"{REF_PREFIX}{self._counter}"
        self._entries[ref] = ElementHandleEntry(
            ref=ref,
            element_handle=handle,
            tag_name=element.tag,
            role=role,
            name=name,
            attributes=dict(element.attributes),
        )
        self._by_handle[handle] = ref
        return ref

    def get(self, ref: str) -> Optional[ElementHandleEntry]:
        return self._entries.get(ref)

    def resolve(self, ref: str) -> ElementHandleEntry:
        """
        Look up a live entry.

        Raises:
            StaleRefError: the ref was allocated in this epoch but its element is gone
            UnknownRefError: the ref was never allocated in this epoch
        """
        entry = self._entries.get(ref)
        if entry is not None:
            return entry
        if ref in self._retired:
            raise StaleRefError(ref, self.role)
        raise UnknownRefError(ref, self.role)

    def ref_for(self, handle: Optional[int]) -> Optional[str]:
        if handle is None:
            return None
        return self._by_handle.get(handle)

    def is_retired(self, ref: str) -> bool:
        return ref in self._retired

    def retire(self, ref: str) -> None:
        """Drop a ref whose element is known to be disconnected."""
        entry = self._entries.pop(ref, None)
        if entry is None:
            return
        self._by_handle.pop(entry.element_handle, None)
        self._retired.add(ref)

    def retain(self, live_handles: Iterable[int]) -> List[str]:
        """
        Keep only entries whose element handle is still live; retire the rest.

        Returns:
            The refs that were dropped, in allocation order
        """
        live = set(live_handles)
        dropped = [ref for ref, entry in self._entries.items() if entry.element_handle not in live]
        for ref in dropped:
            self.retire(ref)
        return dropped

    def for_each(self, callback: Callable[[str, ElementHandleEntry], None]) -> None:
        for ref, entry in list(self._entries.items()):
            callback(ref, entry)

    def refs(self) -> List[str]:
        return list(self._entries)

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ref: object) -> bool:
        return ref in self._entries

    def __iter__(self) -> Iterator[ElementHandleEntry]:
        return iter(list(self._entries.values()))
