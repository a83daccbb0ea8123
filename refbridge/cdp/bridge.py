"""Python side of one frame's injected bridge."""

from typing import Any, Dict, Optional

from playwright.async_api import CDPSession

from ..a11y.snapshot import SnapshotBuilder
from ..a11y.structure import StructuralAnalyzer
from ..core.errors import CDPError, StaleRefError
from ..dom.nodes import DomDocument
from ..refs.registry import ElementRegistry
from ..types import (
    AncestorsResult,
    BridgeConfig,
    BridgeHandle,
    Bounds,
    DescendantsResult,
    InspectResult,
    SiblingsResult,
    SnapshotResult,
)
from ..utils.logger import RefBridgeLogger
from .injector import BridgeInjector, RemoteObject


class FrameBridge:
    """
    One frame's bridge instance plus the registry for its navigation epoch.

    The in-page bridge only captures the DOM and acts on elements by node
    id. Snapshots and structural analysis run here over the capture, against
    this bridge's ``ElementRegistry``, so refs are scoped to exactly one
    (role, frame, epoch).
    """

    def __init__(
        self,
        handle: BridgeHandle,
        session: CDPSession,
        injector: BridgeInjector,
        ordinal: int = 0,
        role: Optional[str] = None,
        config: Optional[BridgeConfig] = None,
        logger: Optional[RefBridgeLogger] = None,
    ):
        self.handle = handle
        self.session = session
        self.injector = injector
        self.ordinal = ordinal
        self.role = role
        self.config = config or BridgeConfig()
        self.logger = logger
        self.registry = ElementRegistry(role)

    @property
    def frame_id(self) -> str:
        return self.handle.frame_id

    @property
    def context_id(self) -> int:
        return self.handle.context_id

    async def call(self, method: str, *args: Any) -> Any:
        return await self.injector.call(self.session, self.handle, method, *args)

    async def is_alive(self) -> bool:
        return await self.injector.health_check(self.session, self.handle)

    async def capture(self) -> DomDocument:
        """Serialize the frame's live DOM through the bridge."""
        data = await self.call("capture")
        return DomDocument.from_capture(data)

    async def snapshot(self) -> SnapshotResult:
        document = await self.capture()
        result = SnapshotBuilder(document, self.registry).generate()
        if self.logger:
            self.logger.debug(
                "bridge:snapshot",
                "Snapshot generated",
                element_count=result.element_count,
                refs_allocated=self.registry.counter,
            )
        return result

    async def click(self, ref: str) -> None:
        entry = self.registry.resolve(ref)
        result = await self.call("click", entry.element_handle)
        self._check_live(ref, result)

    async def type(self, ref: str, text: str) -> None:
        entry = self.registry.resolve(ref)
        result = await self.call("type", entry.element_handle, text)
        self._check_live(ref, result)

    async def inspect(self, ref: str) -> InspectResult:
        entry = self.registry.resolve(ref)
        result = await self.call("inspect", entry.element_handle)
        self._check_live(ref, result)
        return InspectResult(
            ref=ref,
            role=entry.role,
            name=entry.name,
            tag_name=result.get("tag") or entry.tag_name,
            text=result.get("text") or "",
            visible=bool(result.get("visible")),
            bounds=Bounds(**(result.get("bounds") or {})),
            attributes=result.get("attrs") or {},
        )

    async def get_ancestors(self, ref: str) -> AncestorsResult:
        self.registry.resolve(ref)
        return (await self._analyzer()).get_ancestors(ref)

    async def get_siblings(self, ref: str, ancestor_level: int) -> SiblingsResult:
        self.registry.resolve(ref)
        return (await self._analyzer()).get_siblings(ref, ancestor_level)

    async def get_descendants(self, ref: str, ancestor_level: int) -> DescendantsResult:
        self.registry.resolve(ref)
        return (await self._analyzer()).get_descendants(ref, ancestor_level)

    async def ref_for_object(self, object_id: str) -> Optional[str]:
        """The ref of the element behind a remote object of this frame's world, if it has one."""
        node_id = await self.call("idOf", RemoteObject(object_id))
        return self.registry.ref_for(node_id)

    async def _analyzer(self) -> StructuralAnalyzer:
        return StructuralAnalyzer(await self.capture(), self.registry, self.config)

    def _check_live(self, ref: str, result: Optional[Dict[str, Any]]) -> None:
        if result is None:
            raise CDPError("Runtime.callFunctionOn", f"bridge returned no result for {ref}")
        if not result.get("ok", False):
            self.registry.retire(ref)
            raise StaleRefError(ref, self.role)
