"""State owned by one named role."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

from playwright.async_api import BrowserContext, CDPSession, Page

from ..refs.index import GlobalRefIndex
from ..types import FrameInfo
from .failures import FailureLog

if TYPE_CHECKING:
    from ..cdp.bridge import FrameBridge
    from ..cdp.sessions import CDPSessionPool


class RoleState(str, Enum):
    """Lifecycle of a role context."""
    CREATED = "created"
    NAVIGATED = "navigated"
    CLOSED = "closed"


class RoleContext:
    """
    Browser resources and bookkeeping of one role.

    Each role has its own Playwright browser context (so its own cookies and
    storage), one page, one CDP session pool and one bridge per injected
    frame. Only ``MultiRoleBrowser`` creates, mutates and closes these.
    """

    def __init__(
        self,
        role: str,
        context: BrowserContext,
        page: Page,
        sessions: 'CDPSessionPool',
        session: CDPSession,
        main_frame_id: str,
        default_url: Optional[str] = None,
    ):
        self.role = role
        self.context = context
        self.page = page
        self.sessions = sessions
        self.session = session
        self.main_frame_id = main_frame_id
        self.default_url = default_url

        self.state = RoleState.CREATED
        self.created_at = datetime.now()
        self.last_used = self.created_at
        self.has_navigated = False
        self.navigation_epoch = 0

        self.bridges: Dict[str, 'FrameBridge'] = {}
        self.frames: List[FrameInfo] = []
        self.ordinals: Dict[int, str] = {}
        self.ref_index: Optional[GlobalRefIndex] = None
        self.failures = FailureLog()

    @property
    def main_bridge(self) -> Optional['FrameBridge']:
        return self.bridges.get(self.main_frame_id)

    @property
    def is_closed(self) -> bool:
        return self.state is RoleState.CLOSED

    def touch(self) -> None:
        self.last_used = datetime.now()

    def frame_for_ordinal(self, ordinal: int) -> Optional[str]:
        return self.ordinals.get(ordinal)

    def reset_epoch(self) -> None:
        """Forget every bridge, frame and ref of the previous document."""
        self.navigation_epoch += 1
        self.bridges = {}
        self.frames = []
        self.ordinals = {}
        self.ref_index = None

    def describe(self) -> Dict[str, object]:
        return {
            "role": self.role,
            "state": self.state.value,
            "url": self.page.url,
            "has_navigated": self.has_navigated,
            "navigation_epoch": self.navigation_epoch,
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
            "frames": len(self.bridges),
        }
