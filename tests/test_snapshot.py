"""Tests for the accessibility snapshot builder."""

from refbridge.a11y import SnapshotBuilder
from refbridge.dom.nodes import DomDocument

from dom_builders import assigned_element, capture, document, el, remove


def snapshot(registry, *children, active=None):
    return SnapshotBuilder(document(*children, active=active), registry).generate()


class TestSnapshotFormat:
    """Tests for the rendered text format."""

    def test_renders_indented_tree_with_refs(self, registry):
        """Should render roles, names and refs as a two-space indented tree."""
        result = snapshot(
            registry,
            el(
                "nav",
                el("a", "Home", attrs={"href": "/"}),
                attrs={"aria-label": "Main"},
            ),
            el("h1", "Sign in"),
            el("button", "Submit"),
        )

        assert result.text == (
            '- navigation "Main"\n'
            '  - link "Home" [url="/"] [ref=e1]\n'
            '- heading "Sign in" [level=1]\n'
            '- button "Submit" [ref=e2]'
        )
        assert result.element_count == 2

    def test_textbox_value_becomes_text_child(self, registry):
        result = snapshot(
            registry,
            el("input", attrs={"type": "email", "placeholder": "Email"}, value="me@example.com"),
        )

        assert result.text == (
            '- textbox "Email" [type="email"] [ref=e1]\n'
            '  - text: "me@example.com"'
        )

    def test_checkbox_flags_and_type(self, registry):
        result = snapshot(
            registry,
            el("input", attrs={"type": "checkbox", "aria-label": "Agree"}, checked=True),
            el("input", attrs={"type": "checkbox", "aria-label": "Some"}, checked="mixed"),
        )

        assert result.text == (
            '- checkbox "Agree" [checked] [type="checkbox"] [ref=e1]\n'
            '- checkbox "Some" [checked=mixed] [type="checkbox"] [ref=e2]'
        )

    def test_aria_state_flags(self, registry):
        result = snapshot(
            registry,
            el("button", "Menu", attrs={"aria-expanded": "true", "aria-pressed": "true"}),
            el("div", "Tab", attrs={"role": "tab", "aria-selected": "true", "aria-label": "Tab"}),
        )

        assert result.text == (
            '- button "Menu" [expanded] [pressed] [ref=e1]\n'
            '- tab "Tab" [selected] [ref=e2]'
        )

    def test_active_and_disabled_states(self, registry):
        """Should mark the focused element active and disabled controls disabled."""
        result = snapshot(
            registry,
            el("button", "Go", nid=500),
            el("button", "Stop", disabled=True),
            active=500,
        )

        assert result.text == (
            '- button "Go" [active] [ref=e1]\n'
            '- button "Stop" [disabled] [ref=e2]'
        )

    def test_quotes_are_escaped(self, registry):
        result = snapshot(registry, el("button", 'Say "hi"'))
        assert result.text == '- button "Say \\"hi\\"" [ref=e1]'

    def test_empty_body(self, registry):
        result = snapshot(registry)
        assert result.text == ""
        assert result.element_count == 0


class TestSnapshotPruning:
    """Tests for hidden and excluded content."""

    def test_display_none_prunes_subtree(self, registry):
        result = snapshot(
            registry,
            el("div", el("button", "Hidden"), display="none"),
            el("button", "Shown"),
        )
        assert result.text == '- button "Shown" [ref=e1]'

    def test_aria_hidden_prunes_subtree(self, registry):
        result = snapshot(
            registry,
            el("div", el("button", "Hidden"), attrs={"aria-hidden": "true"}),
            el("div", el("button", "Shown"), attrs={"aria-hidden": "false"}),
        )
        assert result.text == '- button "Shown" [ref=e1]'

    def test_visibility_hidden_keeps_visible_children(self, registry):
        result = snapshot(
            registry,
            el("div", el("button", "Inner", visibility="visible"), visibility="hidden"),
        )
        assert result.text == '- button "Inner" [ref=e1]'

    def test_scripts_are_excluded(self, registry):
        result = snapshot(registry, el("script", "var x = 1;"), el("style", "a{}"))
        assert result.text == ""


class TestSnapshotHoisting:
    """Tests for wrapper collapsing."""

    def test_non_semantic_wrappers_are_transparent(self, registry):
        """Should hoist a button out of plain div/span wrappers."""
        result = snapshot(registry, el("div", el("span", el("button", "Deep"))))
        assert result.text == '- button "Deep" [ref=e1]'

    def test_generic_wrapper_around_single_control_collapses(self, registry):
        result = snapshot(registry, el("div", el("button", "Save"), attrs={"role": "generic"}))
        assert result.text == '- button "Save" [ref=e1]'

    def test_named_group_keeps_its_line(self, registry):
        result = snapshot(
            registry,
            el("div", el("button", "Bold"), attrs={"role": "group", "aria-label": "Tools"}),
        )
        assert result.text == (
            '- group "Tools" [ref=e1]\n'
            '  - button "Bold" [ref=e2]'
        )

    def test_generic_wrapper_with_several_children_stays(self, registry):
        result = snapshot(
            registry,
            el("div", el("button", "A"), el("button", "B"), attrs={"role": "generic"}),
        )
        assert result.text == (
            '- generic\n'
            '  - button "A" [ref=e1]\n'
            '  - button "B" [ref=e2]'
        )


class TestSnapshotComposedTree:
    """Tests for shadow DOM, slots and aria-owns."""

    def test_shadow_tree_and_slotted_content(self, registry):
        """Should render slotted light children where their slot sits in the shadow tree."""
        light = el("button", "Light")
        host = el(
            "x-card",
            light,
            shadow=[
                el("h2", "Card"),
                el("slot", assigned=[assigned_element(light)]),
                el("button", "Shadow"),
            ],
        )

        result = snapshot(registry, host)

        assert result.text == (
            '- heading "Card" [level=2]\n'
            '- button "Light" [ref=e1]\n'
            '- button "Shadow" [ref=e2]'
        )

    def test_unassigned_slot_renders_fallback(self, registry):
        host = el("x-box", shadow=[el("slot", el("button", "Fallback"))])
        result = snapshot(registry, host)
        assert result.text == '- button "Fallback" [ref=e1]'

    def test_aria_owns_renders_once_under_first_owner(self, registry):
        """Should move an owned element under its first owner and render it only there."""
        result = snapshot(
            registry,
            el("div", attrs={"role": "listbox", "aria-label": "Colors", "aria-owns": "red"}),
            el("div", attrs={"role": "listbox", "aria-label": "Other", "aria-owns": "red"}),
            el("div", attrs={"id": "red", "role": "option", "aria-label": "Red"}),
        )

        assert result.text == (
            '- listbox "Colors" [ref=e1]\n'
            '  - option "Red" [ref=e2]\n'
            '- listbox "Other" [ref=e3]'
        )
        assert result.text.count('option "Red"') == 1

    def test_aria_owns_ancestor_claim_is_ignored(self, registry):
        result = snapshot(
            registry,
            el(
                "div",
                el("div", attrs={"role": "group", "aria-label": "Inner", "aria-owns": "outer"}),
                attrs={"id": "outer", "role": "group", "aria-label": "Outer"},
            ),
        )

        assert result.text == (
            '- group "Outer" [ref=e1]\n'
            '  - group "Inner" [ref=e2]'
        )

    def test_aria_owns_mutual_claims_keep_both_elements(self, registry):
        """Should keep the first claim of a mutual aria-owns pair and ignore the one that closes the loop."""
        result = snapshot(
            registry,
            el("div", el("button", "Alpha"), attrs={"id": "a", "role": "group", "aria-label": "A", "aria-owns": "b"}),
            el("div", el("button", "Beta"), attrs={"id": "b", "role": "group", "aria-label": "B", "aria-owns": "a"}),
        )

        assert result.text == (
            '- group "A" [ref=e1]\n'
            '  - button "Alpha" [ref=e2]\n'
            '  - group "B" [ref=e3]\n'
            '    - button "Beta" [ref=e4]'
        )

    def test_aria_owns_chain_back_to_owner_is_ignored(self, registry):
        result = snapshot(
            registry,
            el("div", attrs={"id": "a", "role": "group", "aria-label": "A", "aria-owns": "b"}),
            el("div", attrs={"id": "b", "role": "group", "aria-label": "B", "aria-owns": "c"}),
            el("div", attrs={"id": "c", "role": "group", "aria-label": "C", "aria-owns": "a"}),
        )

        assert result.text == (
            '- group "A" [ref=e1]\n'
            '  - group "B" [ref=e2]\n'
            '    - group "C" [ref=e3]'
        )

    def test_aria_owns_from_hidden_owner_is_ignored(self, registry):
        """Should leave an element in place when its owner is aria-hidden."""
        result = snapshot(
            registry,
            el("div", attrs={"aria-hidden": "true", "aria-owns": "t"}),
            el("button", "Target", attrs={"id": "t"}),
        )

        assert result.text == '- button "Target" [ref=e1]'

    def test_aria_owns_from_inside_display_none_is_ignored(self, registry):
        result = snapshot(
            registry,
            el("div", el("div", attrs={"aria-owns": "t"}), display="none"),
            el("button", "Target", attrs={"id": "t"}),
        )

        assert result.text == '- button "Target" [ref=e1]'

    def test_aria_owns_from_unslotted_light_child_still_renders_target(self, registry):
        """Should render an owned element at the end when its owner is never reached."""
        host = el(
            "x-box",
            el("div", attrs={"aria-owns": "t"}),
            shadow=[el("h2", "Box")],
        )

        result = snapshot(registry, host, el("button", "Target", attrs={"id": "t"}))

        assert result.text == (
            '- heading "Box" [level=2]\n'
            '- button "Target" [ref=e1]'
        )


class TestSnapshotRefStability:
    """Tests for ref stability across snapshots of one document."""

    def test_repeated_snapshots_are_identical(self, registry):
        doc = document(el("button", "A"), el("a", "B", attrs={"href": "/b"}))

        first = SnapshotBuilder(doc, registry).generate()
        second = SnapshotBuilder(doc, registry).generate()

        assert first.text == second.text
        assert registry.counter == 2

    def test_removed_element_loses_its_ref(self, registry):
        """Should keep surviving refs and never reuse the removed one."""
        data = capture(el("button", "A", nid=1), el("button", "B", nid=2))
        SnapshotBuilder(DomDocument.from_capture(data), registry).generate()

        remove(data["body"], 1)
        data["body"]["children"].append(el("button", "C", nid=3))
        result = SnapshotBuilder(DomDocument.from_capture(data), registry).generate()

        assert result.text == (
            '- button "B" [ref=e2]\n'
            '- button "C" [ref=e3]'
        )
        assert result.element_count == 2
        assert "e1" not in registry
        assert registry.is_retired("e1")
