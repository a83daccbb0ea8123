"""Bridge injection into isolated worlds over CDP."""

import json
from typing import Any, Dict, NamedTuple, Optional

from playwright.async_api import CDPSession

from ..core.errors import BridgeInjectionError, BridgeVersionMismatchError, CDPError
from ..dom.scripts import (
    BRIDGE_BUNDLE,
    BRIDGE_VERSION,
    CALL_BRIDGE_METHOD,
    FACTORY_VERSION_EXPRESSION,
    create_instance_expression,
)
from ..types import BridgeConfig, BridgeHandle
from ..utils.logger import RefBridgeLogger


class RemoteObject(NamedTuple):
    """A remote object passed to a bridge method by id rather than by value."""
    object_id: str


def _call_argument(value: Any) -> Dict[str, Any]:
    if isinstance(value, RemoteObject):
        return {"objectId": value.object_id}
    return {"value": value}


class BridgeInjector:
    """
    Creates bridge instances inside named isolated worlds.

    Injection is: create (or reuse) the isolated world in the frame, evaluate
    the bundle there, check the factory's version, then create an instance
    and keep its remote object id. The bundle refuses to redefine a factory
    of the same version, so injecting twice into one world is harmless.
    """

    def __init__(
        self,
        world_name: str,
        config: Optional[BridgeConfig] = None,
        logger: Optional[RefBridgeLogger] = None,
        expected_version: str = BRIDGE_VERSION,
    ):
        self.world_name = world_name
        self.config = config or BridgeConfig()
        self.logger = logger
        self.expected_version = expected_version

    async def inject(self, session: CDPSession, frame_id: str) -> BridgeHandle:
        """
        Inject the bridge into ``frame_id`` and create an instance.

        Args:
            session: CDP session hosting the frame
            frame_id: CDP frame id

        Returns:
            BridgeHandle for the new instance

        Raises:
            BridgeInjectionError: the world or the instance could not be created
            BridgeVersionMismatchError: the world holds a factory of another version
        """
        try:
            world = await session.send(
                "Page.createIsolatedWorld",
                {
                    "frameId": frame_id,
                    "worldName": self.world_name,
                    # CDP's own spelling
                    "grantUniveralAccess": False,
                },
            )
        except Exception as e:
            raise BridgeInjectionError(frame_id, f"could not create isolated world: {e}") from e

        context_id = world.get("executionContextId")
        if context_id is None:
            raise BridgeInjectionError(frame_id, "isolated world has no execution context")

        try:
            await self._evaluate(session, BRIDGE_BUNDLE, context_id)
            version = (await self._evaluate(session, FACTORY_VERSION_EXPRESSION, context_id)).get("value")
        except CDPError as e:
            raise BridgeInjectionError(frame_id, f"bundle evaluation failed: {e.reason}") from e

        if version is None:
            raise BridgeInjectionError(frame_id, "bridge factory missing after injection")
        if version != self.expected_version:
            raise BridgeVersionMismatchError(frame_id, version, self.expected_version)

        try:
            instance = await self._evaluate(
                session,
                create_instance_expression(json.dumps(self.config.model_dump())),
                context_id,
                return_by_value=False,
            )
        except CDPError as e:
            raise BridgeInjectionError(frame_id, f"bridge instance creation failed: {e.reason}") from e

        object_id = instance.get("objectId")
        if not object_id:
            raise BridgeInjectionError(frame_id, "failed to create bridge instance (no objectId)")

        if self.logger:
            self.logger.debug(
                "bridge:inject",
                "Bridge injected",
                frame_id=frame_id,
                context_id=context_id,
                world=self.world_name,
            )

        return BridgeHandle(
            frame_id=frame_id,
            context_id=context_id,
            object_id=object_id,
            world_name=self.world_name,
            version=version,
        )

    async def health_check(self, session: CDPSession, handle: BridgeHandle) -> bool:
        """Whether the handle's world still holds a factory of the expected version."""
        try:
            result = await self._evaluate(session, FACTORY_VERSION_EXPRESSION, handle.context_id)
        except CDPError as e:
            if self.logger:
                self.logger.debug("bridge:health", "Health check failed", frame_id=handle.frame_id, error=e.reason)
            return False
        return result.get("value") == self.expected_version

    async def call(self, session: CDPSession, handle: BridgeHandle, method: str, *args: Any) -> Any:
        """
        Call a method of the bridge instance and return its JSON result.

        Raises:
            CDPError: the protocol call failed or the method threw
        """
        params = {
            "functionDeclaration": CALL_BRIDGE_METHOD,
            "objectId": handle.object_id,
            "arguments": [_call_argument(method)] + [_call_argument(arg) for arg in args],
            "returnByValue": True,
            "awaitPromise": True,
        }
        try:
            response = await session.send("Runtime.callFunctionOn", params)
        except Exception as e:
            raise CDPError("Runtime.callFunctionOn", f"{method}: {e}") from e

        details = response.get("exceptionDetails")
        if details:
            description = (details.get("exception") or {}).get("description") or details.get("text")
            raise CDPError("Runtime.callFunctionOn", f"{method}: {description or 'bridge method call failed'}")
        return (response.get("result") or {}).get("value")

    async def _evaluate(
        self,
        session: CDPSession,
        expression: str,
        context_id: int,
        return_by_value: bool = True,
    ) -> Dict[str, Any]:
        try:
            response = await session.send(
                "Runtime.evaluate",
                {"expression": expression, "contextId": context_id, "returnByValue": return_by_value},
            )
        except Exception as e:
            raise CDPError("Runtime.evaluate", str(e)) from e

        details = response.get("exceptionDetails")
        if details:
            description = (details.get("exception") or {}).get("description") or details.get("text")
            raise CDPError("Runtime.evaluate", description or "evaluation threw")
        return response.get("result") or {}
