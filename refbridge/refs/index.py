"""Global ref index aggregating per-frame registries into one ref space."""

from typing import Dict, Iterator, Optional

from pydantic import BaseModel

from .formatter import RefFormatter
from .registry import ElementRegistry


class RefIndexEntry(BaseModel):
    frame_id: str
    local_ref: str


class GlobalRefIndex:
    """
    Maps global refs (``e3``, ``f2_e5``) to the frame that owns them.

    The bridges live in separate execution contexts with no shared memory, so
    the manager keeps this explicit table and consults it before forwarding
    an operation to a frame-local bridge. It is rebuilt from the registries
    whenever frames are (re)discovered or snapshotted.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, RefIndexEntry] = {}

    def add(self, global_ref: str, frame_id: str, local_ref: str) -> None:
        self._entries[global_ref] = RefIndexEntry(frame_id=frame_id, local_ref=local_ref)

    def add_registry(self, frame_ordinal: int, frame_id: str, registry: ElementRegistry) -> None:
        """Index every live ref of one frame's registry."""
        for ref in registry.refs():
            self.add(RefFormatter.to_global(frame_ordinal, ref), frame_id, ref)

    def lookup(self, global_ref: str) -> Optional[RefIndexEntry]:
        return self._entries.get(global_ref)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, global_ref: object) -> bool:
        return global_ref in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
