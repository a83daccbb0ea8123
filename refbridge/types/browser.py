"""Browser-specific type definitions."""

from typing import Optional

from pydantic import BaseModel


class FrameInfo(BaseModel):
    """A frame discovered in a page's frame tree."""
    frame_id: str
    parent_frame_id: Optional[str] = None
    url: str = ""
    name: Optional[str] = None
    ordinal: int
    # Set when the owning <iframe> was resolved to a ref in the parent frame
    owner_ref: Optional[str] = None

    @property
    def is_main_frame(self) -> bool:
        return self.parent_frame_id is None


class BridgeHandle(BaseModel):
    """Remote handles of a bridge instance living in one isolated world."""
    frame_id: str
    context_id: int
    object_id: str
    world_name: str
    version: str
