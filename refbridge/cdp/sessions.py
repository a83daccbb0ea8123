"""CDP session pool for one role's page and its out-of-process frames."""

from typing import Any, Dict, List, Optional

from playwright.async_api import CDPSession, Page

from ..core.errors import CDPError
from ..utils.logger import RefBridgeLogger


# Messages Chromium returns when a frame is not hosted by the session asked
OOPIF_MARKERS = ("No frame for given id found", "does not have a separate CDP session", "not an OOPIF")


def is_foreign_frame_error(error: BaseException) -> bool:
    """Whether ``error`` says the frame lives in another CDP target."""
    message = str(error)
    return any(marker in message for marker in OOPIF_MARKERS)


class CDPSessionPool:
    """
    Owns the CDP sessions of one page.

    The page session serves the main frame and every same-process child
    frame. Out-of-process iframes (OOPIFs) are separate CDP targets and get
    their own session, found by attaching to each Playwright frame and
    asking it which frame id it hosts.
    """

    def __init__(self, page: Page, logger: Optional[RefBridgeLogger] = None):
        self.page = page
        self.logger = logger
        self._page_session: Optional[CDPSession] = None
        self._frame_sessions: Dict[str, CDPSession] = {}

    async def page_session(self) -> CDPSession:
        """Get or create the page-level session."""
        if self._page_session is None:
            try:
                self._page_session = await self.page.context.new_cdp_session(self.page)
            except Exception as e:
                raise CDPError("Target.attachToTarget", f"failed to create CDP session for page: {e}") from e
        return self._page_session

    async def session_for_frame(self, frame_id: str, main_frame_id: Optional[str] = None) -> CDPSession:
        """The session hosting ``frame_id``: a dedicated OOPIF session if one is known, else the page session."""
        if frame_id == main_frame_id:
            return await self.page_session()
        return self._frame_sessions.get(frame_id) or await self.page_session()

    async def attach_frame(self, frame_id: str) -> CDPSession:
        """
        Find the dedicated session of an out-of-process frame.

        Raises:
            CDPError: no Playwright frame hosts ``frame_id`` in its own target
        """
        if frame_id in self._frame_sessions:
            return self._frame_sessions[frame_id]

        for frame in self.page.frames:
            if frame == self.page.main_frame:
                continue
            try:
                session = await self.page.context.new_cdp_session(frame)
            except Exception as e:
                if is_foreign_frame_error(e):
                    # Same-process frame; shares the page session
                    continue
                raise CDPError("Target.attachToTarget", f"failed to create CDP session for frame: {e}") from e

            tree = await session.send("Page.getFrameTree")
            hosted_id = tree.get("frameTree", {}).get("frame", {}).get("id")
            if hosted_id == frame_id:
                self._frame_sessions[frame_id] = session
                if self.logger:
                    self.logger.debug("cdp:attach", "Attached OOPIF session", frame_id=frame_id)
                return session
            try:
                await session.detach()
            except Exception as e:
                if self.logger:
                    self.logger.debug("cdp:attach", "Could not detach probe session", error=str(e))

        raise CDPError(
            "Target.attachToTarget",
            f"frame {frame_id} lives in a separate CDP session (cross-origin OOPIF) that could not be attached",
        )

    async def send(self, session: CDPSession, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a CDP command, turning transport errors into CDPError."""
        try:
            return await session.send(method, params or {})
        except CDPError:
            raise
        except Exception as e:
            raise CDPError(method, str(e)) from e

    def forget_frames(self) -> List[CDPSession]:
        """Drop cached OOPIF sessions, e.g. after a navigation; returns them for detaching."""
        sessions = [s for s in self._frame_sessions.values() if s is not self._page_session]
        self._frame_sessions.clear()
        return sessions

    async def cleanup(self) -> List[str]:
        """
        Detach every session.

        Returns:
            Error messages of sessions that failed to detach
        """
        errors: List[str] = []
        sessions = self.forget_frames()
        if self._page_session is not None:
            sessions.append(self._page_session)
        self._page_session = None

        for session in sessions:
            try:
                await session.detach()
            except Exception as e:
                errors.append(f"CDP session detach failed: {e}")
        return errors
