"""End-to-end tests for MultiRoleBrowser over in-memory Playwright fakes."""

import asyncio
import json

import pytest

from refbridge import MultiRoleBrowser
from refbridge.core.errors import (
    AncestorLevelTooHighError,
    BridgeVersionMismatchError,
    InvalidRefFormatError,
    NavigationError,
    RoleError,
    StaleRefError,
    UnknownRefError,
)
from refbridge.types import BridgeConfig

from dom_builders import capture, el, remove
from fakes import FakeBrowser, FakeChildFrame, FakeDocument

HOME = "https://example.test/"
OTHER = "https://example.test/other"
CHECKOUT = "https://example.test/checkout"


def make_site():
    return {
        HOME: FakeDocument(
            capture(
                el("h1", "Welcome"),
                el("button", "Sign in", nid=5),
                el("a", "Docs", attrs={"href": "/docs"}, nid=6),
            ),
            title="Home",
        ),
        OTHER: FakeDocument(capture(el("button", "Only", nid=7)), title="Other"),
        CHECKOUT: FakeDocument(
            capture(
                el("button", "Top", nid=40),
                el("iframe", attrs={"title": "Payment"}, nid=50),
            ),
            title="Checkout",
            frames=[
                FakeChildFrame(
                    "child1",
                    capture(el("button", "Pay", nid=7)),
                    url="https://pay.test/",
                    owner_nid=50,
                )
            ],
        ),
    }


async def start(site=None, **kwargs):
    fake = FakeBrowser(site if site is not None else make_site())
    browser = MultiRoleBrowser(headless=True, bridge_config=BridgeConfig(), **kwargs)
    await browser.initialize(browser=fake)
    return browser, fake


def current_page(browser):
    return browser._contexts[browser.get_current_role()].page


class TestNavigate:
    """Tests for navigation and snapshots."""

    @pytest.mark.asyncio
    async def test_navigate_returns_snapshot_and_metadata(self):
        """Should snapshot the loaded page and describe the navigation."""
        browser, _ = await start()

        result = await browser.navigate(HOME)

        assert result.text == (
            '- heading "Welcome" [level=1]\n'
            '- button "Sign in" [ref=e1]\n'
            '- link "Docs" [url="/docs"] [ref=e2]'
        )
        assert result.element_count == 2
        assert result.navigation.success is True
        assert result.navigation.final_url == HOME
        assert result.navigation.page_title == "Home"
        assert result.navigation.status_code == 200
        assert result.navigation.redirect_count == 0
        assert result.navigation.content_type.startswith("text/html")

    @pytest.mark.asyncio
    async def test_snapshot_is_stable(self):
        browser, _ = await start()
        first = await browser.navigate(HOME)
        second = await browser.snapshot()
        assert second.text == first.text

    @pytest.mark.asyncio
    async def test_numbering_restarts_after_navigation(self):
        browser, _ = await start()
        await browser.navigate(HOME)

        result = await browser.navigate(OTHER)

        assert result.text == '- button "Only" [ref=e1]'

    @pytest.mark.asyncio
    async def test_navigation_failure(self):
        browser, _ = await start()
        with pytest.raises(NavigationError) as exc_info:
            await browser.navigate("https://nowhere.test/")
        assert "nowhere.test" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_reinjects_after_document_replaced(self):
        """Should notice a dead bridge, re-inject, and restart ref numbering."""
        browser, _ = await start()
        await browser.navigate(HOME)
        page = current_page(browser)

        page.reload_document(FakeDocument(capture(el("a", "New", attrs={"href": "/n"}))))
        result = await browser.snapshot()

        assert result.text == '- link "New" [url="/n"] [ref=e1]'
        assert browser._contexts["default"].navigation_epoch == 2


class TestActions:
    """Tests for click, type and inspect."""

    @pytest.mark.asyncio
    async def test_click_and_type(self):
        browser, _ = await start()
        await browser.navigate(HOME)
        page = current_page(browser)

        await browser.click("e1")
        await browser.type("e1", "hello")

        assert page.clicks == [("main", 5)]
        assert page.typed == [("main", 5, "hello")]

    @pytest.mark.asyncio
    async def test_inspect(self):
        browser, _ = await start()
        await browser.navigate(HOME)

        result = await browser.inspect("e2")

        assert result.ref == "e2"
        assert result.role == "link"
        assert result.name == "Docs"
        assert result.tag_name == "a"
        assert result.attributes == {"href": "/docs"}
        assert result.bounds.width == 100

    @pytest.mark.asyncio
    async def test_unknown_ref(self):
        """Should tell the caller to take a new snapshot."""
        browser, _ = await start()
        await browser.navigate(HOME)

        with pytest.raises(UnknownRefError) as exc_info:
            await browser.click("e999")

        assert "take a new snapshot" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_removed_element_is_stale(self):
        browser, _ = await start()
        await browser.navigate(HOME)
        remove(current_page(browser).document["body"], 5)

        with pytest.raises(StaleRefError):
            await browser.click("e1")
        with pytest.raises(StaleRefError):
            await browser.click("e1")

    @pytest.mark.asyncio
    async def test_ref_from_previous_page_is_unknown(self):
        browser, _ = await start()
        await browser.navigate(HOME)
        await browser.navigate(OTHER)

        with pytest.raises(UnknownRefError):
            await browser.click("e2")

    @pytest.mark.asyncio
    async def test_malformed_ref(self):
        browser, _ = await start()
        await browser.navigate(HOME)
        with pytest.raises(InvalidRefFormatError):
            await browser.click("bad")


class TestStructure:
    """Tests for the structural analysis operations."""

    @pytest.mark.asyncio
    async def test_resolve_container(self):
        site = {
            HOME: FakeDocument(
                capture(el("form", el("div", el("button", "Go"), attrs={"class": "row"}), attrs={"id": "f"}))
            )
        }
        browser, _ = await start(site)
        await browser.navigate(HOME)

        result = await browser.resolve_container("e1")

        assert [a.tag_name for a in result.ancestors] == ["div", "form"]
        assert result.ancestors[1].contains_refs == ["e1"]

    @pytest.mark.asyncio
    async def test_inspect_pattern_level_too_high(self):
        browser, _ = await start()
        await browser.navigate(HOME)

        with pytest.raises(AncestorLevelTooHighError) as exc_info:
            await browser.inspect_pattern("e1", 100)

        assert "body" in str(exc_info.value)
        assert exc_info.value.available == 0

    @pytest.mark.asyncio
    async def test_extract_anchors(self):
        site = {HOME: FakeDocument(capture(el("ul", el("li", el("a", "One", attrs={"href": "/1"})))))}
        browser, _ = await start(site)
        await browser.navigate(HOME)

        result = await browser.extract_anchors("e1", 2)

        assert result.ancestor_at.tag_name == "ul"
        assert result.descendants[0].descendants[0].ref == "e1"


class TestFrames:
    """Tests for child frames."""

    @pytest.mark.asyncio
    async def test_child_frame_is_expanded_under_its_iframe(self):
        """Should inline the child frame's snapshot with prefixed refs."""
        browser, _ = await start()

        result = await browser.navigate(CHECKOUT)

        assert result.text == (
            '- button "Top" [ref=e1]\n'
            '- iframe "Payment" [ref=e2]\n'
            '  - button "Pay" [ref=f1_e1]'
        )
        assert result.element_count == 3

    @pytest.mark.asyncio
    async def test_child_frame_refs_route_to_the_child(self):
        browser, _ = await start()
        await browser.navigate(CHECKOUT)

        await browser.click("f1_e1")

        assert current_page(browser).clicks == [("child1", 7)]

    @pytest.mark.asyncio
    async def test_child_frame_analysis_returns_global_refs(self):
        site = make_site()
        site[CHECKOUT].frames[0].capture = capture(el("div", el("button", "Pay", nid=7)))
        browser, _ = await start(site)
        await browser.navigate(CHECKOUT)

        result = await browser.resolve_container("f1_e1")

        assert result.target.ref == "f1_e1"
        assert result.ancestors[0].contains_refs == ["f1_e1"]

    @pytest.mark.asyncio
    async def test_unknown_frame_ordinal(self):
        browser, _ = await start()
        await browser.navigate(CHECKOUT)
        with pytest.raises(UnknownRefError) as exc_info:
            await browser.click("f9_e1")
        assert exc_info.value.ref == "f9_e1"

    @pytest.mark.asyncio
    async def test_cross_origin_child_is_recorded(self):
        """Should keep the main frame usable and record the child failure."""
        site = make_site()
        site[CHECKOUT].frames[0].inject_error = "No frame for given id found"
        browser, _ = await start(site)

        result = await browser.navigate(CHECKOUT)

        assert "f1_e1" not in result.text
        failures = browser.get_failures()
        assert failures.total_frames == 2
        assert failures.successful_frames == 1
        assert failures.frame_injection_failures[0].frame_id == "child1"
        assert failures.frame_injection_failures[0].reason == "cross-origin"

    @pytest.mark.asyncio
    async def test_hanging_child_times_out(self):
        site = make_site()
        site[CHECKOUT].frames[0].hang = True
        browser, _ = await start(site, frame_injection_timeout_ms=50)

        await browser.navigate(CHECKOUT)

        failure = browser.get_failures().frame_injection_failures[0]
        assert failure.reason == "timeout"

    @pytest.mark.asyncio
    async def test_clear_failures(self):
        site = make_site()
        site[CHECKOUT].frames[0].inject_error = "Blocked a frame from accessing a cross-origin frame"
        browser, _ = await start(site)
        await browser.navigate(CHECKOUT)
        assert browser.get_failures().has_failures is True

        browser.clear_failures()

        assert browser.get_failures().has_failures is False

    @pytest.mark.asyncio
    async def test_version_mismatch_is_fatal(self):
        browser, _ = await start()
        await browser.select_role("default")
        current_page(browser).bridge_version = "0.0.1"

        with pytest.raises(BridgeVersionMismatchError):
            await browser.navigate(HOME)

        failure = browser.get_failures().frame_injection_failures[0]
        assert failure.is_main_frame is True


class TestRoles:
    """Tests for role management."""

    @pytest.mark.asyncio
    async def test_roles_are_isolated(self):
        browser, fake = await start()
        await browser.navigate(HOME)

        await browser.select_role("admin")
        result = await browser.navigate(OTHER)

        assert result.text == '- button "Only" [ref=e1]'
        assert len(fake.contexts) == 2
        await browser.select_role("default")
        assert current_page(browser).url == HOME

    @pytest.mark.asyncio
    async def test_concurrent_selection_creates_one_context(self):
        """Should create a role's context exactly once under concurrent first use."""
        browser, fake = await start()

        first, second = await asyncio.gather(browser.select_role("admin"), browser.select_role("admin"))

        assert len(fake.contexts) == 1
        assert first["role"] == second["role"] == "admin"

    @pytest.mark.asyncio
    async def test_default_url_is_visited_on_first_selection(self):
        browser, _ = await start(roles={"admin": {"default_url": HOME}})

        info = await browser.select_role("admin")

        assert info["has_navigated"] is True
        assert current_page(browser).url == HOME

    @pytest.mark.asyncio
    async def test_auth_state_is_loaded(self, tmp_path):
        state = {"cookies": [{"name": "sid", "value": "1", "domain": "example.test", "path": "/"}], "origins": []}
        path = tmp_path / "admin.json"
        path.write_text(json.dumps(state))
        browser, fake = await start(roles={"admin": {"auth_path": str(path)}})

        await browser.select_role("admin")

        assert fake.contexts[0].options["storage_state"] == state
        assert browser.get_failures().auth_load_error is None

    @pytest.mark.asyncio
    async def test_missing_auth_file_is_recorded(self, tmp_path):
        browser, fake = await start(roles={"admin": {"auth_path": str(tmp_path / "missing.json")}})

        await browser.select_role("admin")

        assert "storage_state" not in fake.contexts[0].options
        assert "Failed to load auth" in browser.get_failures().auth_load_error

    @pytest.mark.asyncio
    async def test_failed_selection_keeps_previous_role(self):
        browser, fake = await start()
        fake.fail_new_context = True

        with pytest.raises(RoleError):
            await browser.select_role("broken")

        assert browser.get_current_role() == "default"

    @pytest.mark.asyncio
    async def test_list_roles(self):
        browser, _ = await start(roles={"admin": {}, "viewer": {}})
        assert browser.list_roles() == ["admin", "viewer", "default"]

        await browser.select_role("temp")

        assert browser.list_roles() == ["admin", "viewer", "temp"]

    @pytest.mark.asyncio
    async def test_close_collects_errors_without_raising(self):
        browser, fake = await start()
        fake.close_error = "context already gone"
        await browser.navigate(HOME)

        errors = await browser.close()

        assert errors == ["Browser context close failed: context already gone"]
        assert fake.closed is False
        assert browser.initialized is False

    @pytest.mark.asyncio
    async def test_close_role(self):
        browser, fake = await start()
        await browser.select_role("admin")

        assert await browser.close_role("admin") == []
        assert fake.contexts[0].closed is True
        assert await browser.close_role("admin") == []
