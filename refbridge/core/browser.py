"""MultiRoleBrowser: isolated browser roles with ref-addressable snapshots."""

import asyncio
import json
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

import aiofiles
from playwright.async_api import Browser, Playwright, Response, async_playwright
from pydantic import BaseModel, ValidationError

from ..cdp.bridge import FrameBridge
from ..cdp.injector import BridgeInjector
from ..cdp.sessions import CDPSessionPool
from ..refs.formatter import RefFormatter
from ..types import (
    AncestorsResult,
    BridgeConfig,
    BrowserParams,
    DescendantsResult,
    InspectResult,
    NavigationInfo,
    RoleConfig,
    RolesConfiguration,
    SiblingsResult,
    SnapshotResult,
)
from ..utils.logger import RefBridgeLogger, configure_logging
from .errors import (
    AncestorLevelTooHighError,
    BrowserNotAvailableError,
    ConfigurationError,
    NavigationError,
    RefBridgeError,
    RoleError,
    StaleRefError,
    UnknownRefError,
)
from .failures import FailureLog
from .frames import FrameCoordinator
from .role_context import RoleContext, RoleState


T = TypeVar("T")


class MultiRoleBrowser:
    """
    Drives several isolated browser roles over one Chromium instance.

    Each role gets its own browser context (cookies, storage), page and CDP
    session. Operations always apply to the current role, selected with
    ``select_role``. Roles are created lazily on first use; concurrent first
    use of one role creates exactly one context.
    """

    def __init__(
        self,
        headless: bool = False,
        browser: str = "chromium",
        browser_args: Optional[List[str]] = None,
        verbose: int = 0,
        navigation_timeout_ms: int = 30000,
        frame_injection_timeout_ms: int = 3000,
        wait_until: str = "networkidle",
        world_name_prefix: str = "refbridge",
        default_role: str = "default",
        context_options: Optional[Dict[str, Any]] = None,
        roles: Optional[Dict[str, Union[RoleConfig, Dict[str, Any]]]] = None,
        bridge_config: Optional[BridgeConfig] = None,
    ):
        """
        Initialize MultiRoleBrowser with configuration.

        Args:
            headless: Run browser in headless mode
            browser: Browser type (only "chromium" speaks CDP)
            browser_args: Additional browser arguments
            verbose: Logging verbosity (0-3)
            navigation_timeout_ms: Bound on each page.goto
            frame_injection_timeout_ms: Bound on injecting into one child frame
            wait_until: Load state navigation waits for
            world_name_prefix: Prefix of the isolated world name
            default_role: Role selected at start
            context_options: Extra options for every new browser context
            roles: Per-role settings (auth storage state, default url)
            bridge_config: Structural analysis limits; read from BRIDGE_* env vars when omitted
        """
        try:
            self.config = BrowserParams(
                headless=headless,
                browser=browser,  # type: ignore
                browser_args=browser_args or [],
                verbose=verbose,
                navigation_timeout_ms=navigation_timeout_ms,
                frame_injection_timeout_ms=frame_injection_timeout_ms,
                wait_until=wait_until,  # type: ignore
                world_name_prefix=world_name_prefix,
                default_role=default_role,
                context_options=context_options or {},
            )
            self.roles_config = RolesConfiguration(roles=roles or {})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.bridge_config = bridge_config or BridgeConfig.from_env()

        self.logger = RefBridgeLogger(configure_logging(verbose), verbose)

        self.initialized = False
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._owns_browser = False

        self.current_role = self.config.default_role
        self._contexts: Dict[str, RoleContext] = {}
        self._pending: Dict[str, "asyncio.Task[RoleContext]"] = {}
        self._lock = asyncio.Lock()

        self.injector = BridgeInjector(
            world_name=f"{self.config.world_name_prefix}_isolated",
            config=self.bridge_config,
            logger=self.logger.child(component="injector"),
        )
        self.frames = FrameCoordinator(
            self.injector,
            self.bridge_config,
            self.logger,
            frame_timeout_ms=self.config.frame_injection_timeout_ms,
        )

        self.logger.info(
            "browser:init",
            "MultiRoleBrowser initialized",
            default_role=self.current_role,
            roles=list(self.roles_config.roles),
        )

    async def initialize(self, browser: Optional[Browser] = None) -> None:
        """
        Launch the browser, or adopt an already running one.

        Args:
            browser: Existing Playwright Browser to use instead of launching one

        Raises:
            BrowserNotAvailableError: If the browser fails to start
        """
        if self.initialized:
            self.logger.warn("browser:init", "Already initialized")
            return

        if browser is not None:
            self.browser = browser
            self._owns_browser = False
            self.initialized = True
            return

        try:
            self.playwright = await async_playwright().start()

            browser_args = list(self.config.browser_args)
            if not any(arg.startswith("--disable-blink-features") for arg in browser_args):
                browser_args.append("--disable-blink-features=AutomationControlled")

            browser_type = getattr(self.playwright, self.config.browser)
            self.browser = await browser_type.launch(
                headless=self.config.headless,
                args=browser_args,
            )
            self._owns_browser = True
            self.initialized = True
            self.logger.info("browser:init", "Browser launched", headless=self.config.headless)
        except Exception as e:
            self.logger.error("browser:init", f"Browser launch failed: {e}", error=str(e))
            if self.playwright:
                await self.playwright.stop()
                self.playwright = None
            raise BrowserNotAvailableError(str(e)) from e

    # Role lifecycle

    async def select_role(self, role: str) -> Dict[str, object]:
        """
        Make ``role`` current, creating its context on first use.

        A role that never navigated is sent to its configured ``default_url``.
        If the role cannot be created, the previous role stays current.
        """
        previous = self.current_role
        self.current_role = role
        try:
            ctx = await self._get_context(role)
        except Exception:
            self.current_role = previous
            raise

        ctx.touch()
        self.logger.info("browser:select_role", "Role selected", role=role, previous=previous)

        if not ctx.has_navigated and ctx.default_url:
            await self.navigate(ctx.default_url)
        return ctx.describe()

    def list_roles(self) -> List[str]:
        """Configured roles plus any role created on the fly."""
        names = list(self.roles_config.roles)
        for name, ctx in self._contexts.items():
            if name not in names and not ctx.is_closed:
                names.append(name)
        if self.current_role not in names:
            names.append(self.current_role)
        return names

    def get_current_role(self) -> str:
        return self.current_role

    def get_failures(self) -> FailureLog:
        """Non-fatal failures recorded for the current role."""
        ctx = self._contexts.get(self.current_role)
        if ctx is None:
            return FailureLog()
        return ctx.failures.model_copy(deep=True)

    def clear_failures(self) -> None:
        ctx = self._contexts.get(self.current_role)
        if ctx is not None:
            ctx.failures.clear()

    async def _get_context(self, role: str) -> RoleContext:
        if not self.initialized:
            await self.initialize()

        async with self._lock:
            ctx = self._contexts.get(role)
            if ctx is not None and not ctx.is_closed:
                return ctx
            task = self._pending.get(role)
            if task is None:
                task = asyncio.ensure_future(self._create_context(role))
                self._pending[role] = task

        try:
            ctx = await task
        finally:
            async with self._lock:
                if self._pending.get(role) is task:
                    del self._pending[role]

        async with self._lock:
            self._contexts.setdefault(role, ctx)
            return self._contexts[role]

    async def _create_context(self, role: str) -> RoleContext:
        if self.browser is None:
            raise BrowserNotAvailableError("Browser not initialized")

        role_config = self.roles_config.roles.get(role) or RoleConfig()
        options: Dict[str, Any] = dict(self.config.context_options)

        auth_error: Optional[str] = None
        if role_config.auth_path:
            try:
                options["storage_state"] = await self._load_storage_state(role_config.auth_path)
            except (OSError, ValueError) as e:
                auth_error = f"Failed to load auth from {role_config.auth_path}: {e}"
                self.logger.warn("browser:auth", "Auth load failed; continuing unauthenticated", role=role, error=str(e))

        try:
            context = await self.browser.new_context(**options)
        except Exception as e:
            raise RoleError(role, f"could not create browser context: {e}") from e

        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
            sessions = CDPSessionPool(page, self.logger.child(component="cdp", role=role))
            session = await sessions.page_session()
            tree = await sessions.send(session, "Page.getFrameTree")
            main_frame_id = tree["frameTree"]["frame"]["id"]
        except Exception as e:
            try:
                await context.close()
            except Exception as close_error:
                self.logger.debug("browser:create_role", "Context close failed", role=role, error=str(close_error))
            if isinstance(e, RefBridgeError):
                raise
            raise RoleError(role, f"could not open page: {e}") from e

        ctx = RoleContext(
            role,
            context,
            page,
            sessions,
            session,
            main_frame_id,
            default_url=role_config.default_url,
        )
        ctx.failures.auth_load_error = auth_error

        self.logger.info(
            "browser:create_role",
            "Role context created",
            role=role,
            authenticated=role_config.auth_path is not None and auth_error is None,
        )
        return ctx

    @staticmethod
    async def _load_storage_state(path: str) -> Dict[str, Any]:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            raw = await f.read()
        state = json.loads(raw)
        if not isinstance(state, dict):
            raise ValueError("storage state must be a JSON object")
        return state

    async def _current(self) -> RoleContext:
        ctx = await self._get_context(self.current_role)
        ctx.touch()
        return ctx

    # Page operations

    async def navigate(self, url: str) -> SnapshotResult:
        """
        Navigate the current role and return the new page's snapshot.

        Every ref of the previous document is invalidated; numbering restarts at e1.

        Raises:
            NavigationError: page.goto failed
            BridgeInjectionError: the main frame's bridge could not be injected
        """
        ctx = await self._current()
        self.logger.info("browser:navigate", "Navigating", role=ctx.role, url=url)

        start = time.monotonic()
        try:
            response = await ctx.page.goto(
                url,
                wait_until=self.config.wait_until,
                timeout=self.config.navigation_timeout_ms,
            )
        except Exception as e:
            self.logger.error("browser:navigate", "Navigation failed", role=ctx.role, url=url, error=str(e))
            raise NavigationError(ctx.role, url, str(e)) from e
        load_time_ms = int((time.monotonic() - start) * 1000)

        for session in ctx.sessions.forget_frames():
            try:
                await session.detach()
            except Exception as e:
                ctx.failures.record_cleanup_error(f"CDP session detach failed: {e}")
        ctx.reset_epoch()
        await self.frames.inject_all(ctx)
        ctx.has_navigated = True
        ctx.state = RoleState.NAVIGATED

        snapshot = await self.frames.snapshot(ctx)
        navigation = NavigationInfo(
            success=response is None or response.ok,
            requested_url=url,
            final_url=ctx.page.url,
            page_title=await ctx.page.title(),
            status_code=response.status if response is not None else None,
            load_time_ms=load_time_ms,
            redirect_count=_redirect_count(response),
            content_type=response.headers.get("content-type") if response is not None else None,
        )

        self.logger.info(
            "browser:navigate",
            "Navigation complete",
            role=ctx.role,
            final_url=navigation.final_url,
            status=navigation.status_code,
            elements=snapshot.element_count,
            epoch=ctx.navigation_epoch,
        )
        return SnapshotResult(text=snapshot.text, element_count=snapshot.element_count, navigation=navigation)

    async def snapshot(self) -> SnapshotResult:
        ctx = await self._current()
        await self.frames.ensure_bridges(ctx)
        return await self.frames.snapshot(ctx)

    async def click(self, ref: str) -> None:
        await self._routed(ref, lambda bridge, local: bridge.click(local))

    async def type(self, ref: str, text: str) -> None:
        await self._routed(ref, lambda bridge, local: bridge.type(local, text))

    async def inspect(self, ref: str) -> InspectResult:
        return await self._routed(ref, lambda bridge, local: bridge.inspect(local))

    async def resolve_container(self, ref: str) -> AncestorsResult:
        """Ancestor chain of ``ref`` up to (excluding) body."""
        return await self._routed(ref, lambda bridge, local: bridge.get_ancestors(local))

    async def inspect_pattern(self, ref: str, ancestor_level: int) -> SiblingsResult:
        """Children of the container ``ancestor_level`` parents above ``ref``."""
        return await self._routed(ref, lambda bridge, local: bridge.get_siblings(local, ancestor_level))

    async def extract_anchors(self, ref: str, ancestor_level: int) -> DescendantsResult:
        """Bounded subtree of the ancestor ``ancestor_level`` parents above ``ref``."""
        return await self._routed(ref, lambda bridge, local: bridge.get_descendants(local, ancestor_level))

    get_ancestors = resolve_container
    get_siblings = inspect_pattern
    get_descendants = extract_anchors

    async def _routed(self, ref: str, operation: Callable[[FrameBridge, str], Awaitable[T]]) -> T:
        ctx = await self._current()
        await self.frames.ensure_bridges(ctx)
        bridge, local_ref = self.frames.route(ctx, ref)

        try:
            result = await operation(bridge, local_ref)
        except StaleRefError:
            if local_ref == ref:
                raise
            raise StaleRefError(ref, ctx.role) from None
        except UnknownRefError:
            if local_ref == ref:
                raise
            raise UnknownRefError(ref, ctx.role) from None
        except AncestorLevelTooHighError as e:
            if local_ref == ref:
                raise
            raise AncestorLevelTooHighError(ref, e.ancestor_level, e.available) from None

        if isinstance(result, BaseModel):
            result = RefFormatter.globalize_result(result, bridge.ordinal)
        return result

    # Shutdown

    async def close_role(self, role: str) -> List[str]:
        """
        Release one role's browser context and sessions.

        Returns:
            Cleanup errors; closing never raises
        """
        async with self._lock:
            ctx = self._contexts.pop(role, None)
        if ctx is None:
            return []
        return await self._release(ctx)

    async def _release(self, ctx: RoleContext) -> List[str]:
        errors = await ctx.sessions.cleanup()
        try:
            await ctx.context.close()
        except Exception as e:
            errors.append(f"Browser context close failed: {e}")

        ctx.state = RoleState.CLOSED
        ctx.reset_epoch()
        for error in errors:
            ctx.failures.record_cleanup_error(error)

        if errors:
            self.logger.warn("browser:close_role", "Role closed with errors", role=ctx.role, errors=errors)
        else:
            self.logger.info("browser:close_role", "Role closed", role=ctx.role)
        return errors

    async def close(self) -> List[str]:
        """
        Close every role, then the browser.

        Returns:
            All cleanup errors collected along the way
        """
        self.logger.info("browser:close", "Closing MultiRoleBrowser")

        async with self._lock:
            contexts = list(self._contexts.values())
            self._contexts.clear()

        errors: List[str] = []
        for ctx in contexts:
            errors.extend(await self._release(ctx))

        if self.browser is not None and self._owns_browser:
            try:
                await self.browser.close()
            except Exception as e:
                errors.append(f"Browser close failed: {e}")
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                errors.append(f"Playwright stop failed: {e}")

        self.browser = None
        self.playwright = None
        self.initialized = False
        self.logger.info("browser:close", "MultiRoleBrowser closed", errors=len(errors))
        return errors

    async def __aenter__(self) -> 'MultiRoleBrowser':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _redirect_count(response: Optional[Response]) -> Optional[int]:
    if response is None:
        return None
    count = 0
    request = response.request.redirected_from
    while request is not None:
        count += 1
        request = request.redirected_from
    return count
