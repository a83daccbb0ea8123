"""Frame discovery, per-frame bridge injection and cross-frame snapshots."""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from ..cdp.bridge import FrameBridge
from ..cdp.injector import BridgeInjector
from ..cdp.sessions import is_foreign_frame_error
from ..refs.formatter import RefFormatter
from ..refs.index import GlobalRefIndex
from ..types import BridgeConfig, FrameInfo, SnapshotResult
from ..utils.logger import RefBridgeLogger
from .errors import BridgeInjectionError, UnknownRefError
from .role_context import RoleContext


INDENT = "  "


def flatten_frame_tree(tree: Dict[str, Any]) -> List[FrameInfo]:
    """
    Flatten a ``Page.getFrameTree`` result depth-first.

    Ordinals follow the same depth-first order: 0 is the main frame, child
    frames are numbered from 1 in document order of their owners.
    """
    frames: List[FrameInfo] = []

    def visit(node: Dict[str, Any], parent_id: Optional[str]) -> None:
        frame = node.get("frame") or {}
        frames.append(
            FrameInfo(
                frame_id=frame.get("id", ""),
                parent_frame_id=parent_id,
                url=frame.get("url", ""),
                name=frame.get("name"),
                ordinal=len(frames),
            )
        )
        for child in node.get("childFrames") or []:
            visit(child, frame.get("id"))

    root = tree.get("frameTree")
    if root:
        visit(root, None)
    return frames


class FrameCoordinator:
    """
    Keeps a role's frames and bridges in step with its current document.

    Main-frame injection failures propagate: a page without a working bridge
    is unusable. Child-frame failures are recorded in the role's FailureLog
    and the frame is left without a bridge.
    """

    def __init__(
        self,
        injector: BridgeInjector,
        config: BridgeConfig,
        logger: RefBridgeLogger,
        frame_timeout_ms: int = 3000,
    ):
        self.injector = injector
        self.config = config
        self.logger = logger.child(component="frames")
        self.frame_timeout = frame_timeout_ms / 1000

    async def discover(self, ctx: RoleContext) -> List[FrameInfo]:
        """List the page's frames; falls back to the main frame alone if the tree is unavailable."""
        try:
            tree = await ctx.sessions.send(ctx.session, "Page.getFrameTree")
            frames = flatten_frame_tree(tree)
        except Exception as e:
            ctx.failures.frame_discovery_error = str(e)
            self.logger.warn("frames:discover", "Frame discovery failed; using main frame only", role=ctx.role, error=str(e))
            frames = []

        if not frames:
            frames = [FrameInfo(frame_id=ctx.main_frame_id, ordinal=0)]
        elif frames[0].frame_id != ctx.main_frame_id:
            # Same-document navigations keep the id; cross-process swaps do not
            ctx.main_frame_id = frames[0].frame_id

        ctx.frames = frames
        ctx.ordinals = {frame.ordinal: frame.frame_id for frame in frames}
        return frames

    async def inject_all(self, ctx: RoleContext) -> None:
        """
        Inject a bridge into every discovered frame.

        Raises:
            BridgeInjectionError: the main frame could not be injected
        """
        frames = await self.discover(ctx)
        main, children = frames[0], frames[1:]

        try:
            await self._inject(ctx, main)
        except Exception as e:
            ctx.failures.record_injection_failure(main.frame_id, e, is_main_frame=True)
            self.logger.error("frames:inject", "Main frame injection failed", role=ctx.role, error=str(e))
            if isinstance(e, BridgeInjectionError):
                raise
            raise BridgeInjectionError(main.frame_id, str(e)) from e

        successful = 1
        for frame in children:
            try:
                await asyncio.wait_for(self._inject(ctx, frame), timeout=self.frame_timeout)
                successful += 1
            except Exception as e:
                failure = ctx.failures.record_injection_failure(frame.frame_id, e)
                self.logger.warn(
                    "frames:inject",
                    "Child frame injection failed",
                    role=ctx.role,
                    frame_id=frame.frame_id,
                    url=frame.url,
                    reason=failure.reason,
                    error=failure.error,
                )

        ctx.failures.total_frames = len(frames)
        ctx.failures.successful_frames = successful
        self.logger.info(
            "frames:inject",
            "Bridges injected",
            role=ctx.role,
            frames=len(frames),
            injected=successful,
        )

    async def ensure_bridges(self, ctx: RoleContext) -> FrameBridge:
        """
        Return a live main bridge, re-injecting when the world has gone away.

        A dead main world means the document changed underneath us (a click
        that navigated, a reload), so every ref of the old epoch is dropped.
        """
        bridge = ctx.main_bridge
        if bridge is not None and await bridge.is_alive():
            return bridge

        self.logger.info("frames:reinject", "Bridge missing or stale; re-injecting", role=ctx.role)
        stale = ctx.sessions.forget_frames()
        for session in stale:
            try:
                await session.detach()
            except Exception as e:
                ctx.failures.record_cleanup_error(f"CDP session detach failed: {e}")
        ctx.reset_epoch()
        await self.inject_all(ctx)
        self.rebuild_index(ctx)
        return ctx.main_bridge

    async def _inject(self, ctx: RoleContext, frame: FrameInfo) -> FrameBridge:
        session = await ctx.sessions.session_for_frame(frame.frame_id, ctx.main_frame_id)
        try:
            handle = await self.injector.inject(session, frame.frame_id)
        except BridgeInjectionError as e:
            if frame.is_main_frame or not is_foreign_frame_error(e):
                raise
            # Out-of-process frame: retry through its own session
            session = await ctx.sessions.attach_frame(frame.frame_id)
            handle = await self.injector.inject(session, frame.frame_id)

        bridge = FrameBridge(
            handle,
            session,
            self.injector,
            ordinal=frame.ordinal,
            role=ctx.role,
            config=self.config,
            logger=self.logger.child(component="bridge", role=ctx.role, frame_id=frame.frame_id),
        )
        ctx.bridges[frame.frame_id] = bridge
        return bridge

    async def snapshot(self, ctx: RoleContext) -> SnapshotResult:
        """Snapshot the main frame and inline each injected child frame under its iframe line."""
        main = ctx.main_bridge
        result = await main.snapshot()
        text = result.text
        if len(ctx.bridges) > 1:
            text = await self._expand(ctx, main, text)

        index = self.rebuild_index(ctx)
        return SnapshotResult(text=text, element_count=len(index))

    async def _expand(self, ctx: RoleContext, parent: FrameBridge, text: str) -> str:
        for frame in ctx.frames:
            if frame.parent_frame_id != parent.frame_id:
                continue
            child = ctx.bridges.get(frame.frame_id)
            if child is None:
                continue

            owner_ref = f"frame:{frame.frame_id}"
            try:
                local_owner = await self._owner_ref(ctx, parent, frame.frame_id)
                if local_owner is None:
                    raise LookupError(f"owner iframe of frame {frame.frame_id} is not in the snapshot")
                owner_ref = RefFormatter.to_global(parent.ordinal, local_owner)
                frame.owner_ref = owner_ref

                child_result = await child.snapshot()
                child_text = RefFormatter.globalize_text(child_result.text, child.ordinal)
                child_text = await self._expand(ctx, child, child_text)
                text = insert_under_ref(text, owner_ref, child_text)
            except Exception as e:
                failure = ctx.failures.record_expansion_failure(owner_ref, e)
                self.logger.warn(
                    "frames:expand",
                    "Frame expansion failed",
                    role=ctx.role,
                    ref=owner_ref,
                    detached=failure.detached,
                    error=failure.error,
                )
        return text

    async def _owner_ref(self, ctx: RoleContext, parent: FrameBridge, frame_id: str) -> Optional[str]:
        owner = await ctx.sessions.send(parent.session, "DOM.getFrameOwner", {"frameId": frame_id})
        resolved = await ctx.sessions.send(
            parent.session,
            "DOM.resolveNode",
            {"backendNodeId": owner.get("backendNodeId"), "executionContextId": parent.context_id},
        )
        object_id = (resolved.get("object") or {}).get("objectId")
        if not object_id:
            return None
        return await parent.ref_for_object(object_id)

    def rebuild_index(self, ctx: RoleContext) -> GlobalRefIndex:
        index = GlobalRefIndex()
        for frame_id, bridge in ctx.bridges.items():
            index.add_registry(bridge.ordinal, frame_id, bridge.registry)
        ctx.ref_index = index
        return index

    def route(self, ctx: RoleContext, global_ref: str) -> Tuple[FrameBridge, str]:
        """
        Find the bridge owning ``global_ref`` and the ref local to it.

        Refs missing from the index still reach their frame's registry when
        the frame is known, so it can tell a stale ref from an unknown one.

        Raises:
            InvalidRefFormatError: ``global_ref`` is not a ref
            UnknownRefError: no injected frame has that ordinal
        """
        parsed = RefFormatter.parse(global_ref)

        entry = ctx.ref_index.lookup(global_ref) if ctx.ref_index is not None else None
        if entry is not None and entry.frame_id in ctx.bridges:
            return ctx.bridges[entry.frame_id], entry.local_ref

        frame_id = ctx.frame_for_ordinal(parsed.frame_ordinal)
        bridge = ctx.bridges.get(frame_id) if frame_id else None
        if bridge is None:
            raise UnknownRefError(global_ref, ctx.role)
        return bridge, parsed.local_ref


def insert_under_ref(text: str, ref: str, child_text: str) -> str:
    """
    Insert ``child_text`` as children of the line carrying ``[ref=<ref>]``.

    Raises:
        LookupError: no line carries the ref
    """
    marker = f"[ref={ref}]"
    lines = text.split("\n")
    for position, line in enumerate(lines):
        if marker not in line:
            continue
        indent = line[: len(line) - len(line.lstrip())] + INDENT
        inserted = [indent + child_line for child_line in child_text.split("\n") if child_line]
        return "\n".join(lines[: position + 1] + inserted + lines[position + 1 :])
    raise LookupError(f"no snapshot line carries {marker}")
