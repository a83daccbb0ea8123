"""ARIA role and accessible-name resolution for captured elements."""

import re
from typing import Optional

from ..dom.nodes import DomDocument, DomNode
from ..utils.text import clean_text


ROLE_MAP = {
    "a": "link",
    "button": "button",
    "img": "image",
    "nav": "navigation",
    "main": "main",
    "header": "banner",
    "footer": "contentinfo",
    "aside": "complementary",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "ul": "list",
    "ol": "list",
    "menu": "list",
    "li": "listitem",
    "table": "table",
    "form": "form",
    "article": "article",
    "section": "section",
    "dialog": "dialog",
    "textarea": "textbox",
    "select": "combobox",
    "option": "option",
    "iframe": "iframe",
    "frame": "iframe",
}

INTERACTIVE_ROLES = frozenset({
    "link",
    "button",
    "textbox",
    "searchbox",
    "checkbox",
    "radio",
    "combobox",
    "select",
    "switch",
    "tab",
    "menuitem",
    "option",
})

LANDMARK_ROLES = frozenset({
    "navigation",
    "main",
    "banner",
    "contentinfo",
    "complementary",
})

EXCLUDED_TAGS = frozenset({"script", "style", "noscript", "template"})
INTERACTIVE_TAGS = frozenset({"a", "button", "input", "select", "textarea"})
FORM_TAGS = frozenset({"input", "select", "textarea", "form"})
FORM_CONTROL_TAGS = frozenset({"input", "select", "textarea"})
FRAME_TAGS = frozenset({"iframe", "frame"})
TEXT_CONTENT_TAGS = frozenset({"a", "button"})
BUTTON_INPUT_TYPES = frozenset({"submit", "button", "reset", "image"})
NON_ROLES = frozenset({"presentation", "none"})

TEST_ID_ATTRIBUTES = ("data-testid", "data-test-id", "data-test", "data-qa", "data-cy")

HEADING_PATTERN = re.compile(r"^h[1-6]$")


def get_test_id(element: DomNode) -> Optional[str]:
    """The element's test id, from the first test-id style attribute present."""
    for attr in TEST_ID_ATTRIBUTES:
        value = element.get_attribute(attr)
        if value:
            return value
    return None


def is_heading_tag(tag: str) -> bool:
    return bool(HEADING_PATTERN.match(tag))


class AriaResolver:
    """
    Maps captured elements to a role, an accessible name and inclusion flags.

    This is a pragmatic, deterministic subset of WAI-ARIA: explicit ``role``
    wins, then a fixed tag table, then ``generic``. Label lookups need the
    owning document, which is why the resolver is bound to one.
    """

    def __init__(self, document: Optional[DomDocument] = None):
        self.document = document

    def explicit_role(self, element: DomNode) -> Optional[str]:
        raw = element.get_attribute("role")
        if raw is None:
            return None
        tokens = raw.split()
        return tokens[0].lower() if tokens else None

    def role(self, element: DomNode) -> str:
        explicit = self.explicit_role(element)
        if explicit:
            return explicit

        if element.tag == "input":
            input_type = (element.get_attribute("type") or "").lower()
            return "button" if input_type in BUTTON_INPUT_TYPES else "textbox"

        return ROLE_MAP.get(element.tag, "generic")

    def refined_role(self, element: DomNode) -> str:
        """``role`` with ``<input>`` textboxes narrowed by their ``type``."""
        role = self.role(element)
        if role != "textbox" or element.tag != "input" or self.explicit_role(element):
            return role
        input_type = (element.get_attribute("type") or "").lower()
        if input_type == "search":
            return "searchbox"
        if input_type in ("checkbox", "radio"):
            return input_type
        return role

    def name(self, element: DomNode) -> str:
        for attr in ("aria-label", "alt", "title"):
            value = element.get_attribute(attr)
            if value and value.strip():
                return clean_text(value)

        if element.tag in FORM_CONTROL_TAGS:
            placeholder = element.get_attribute("placeholder")
            if placeholder and placeholder.strip():
                return clean_text(placeholder)

            dom_id = element.get_attribute("id")
            if dom_id and self.document is not None:
                label = self.document.label_for(dom_id)
                if label is not None:
                    label_text = clean_text(label.text_content())
                    if label_text:
                        return label_text

        if element.tag in TEXT_CONTENT_TAGS or is_heading_tag(element.tag):
            return clean_text(element.text_content())

        return ""

    def is_hidden(self, element: DomNode) -> bool:
        return element.display == "none" or element.visibility in ("hidden", "collapse")

    def is_interactive(self, element: DomNode, role: Optional[str] = None) -> bool:
        role = role or self.refined_role(element)
        return role in INTERACTIVE_ROLES or element.tag in INTERACTIVE_TAGS

    def should_include(self, element: DomNode) -> bool:
        if self.is_hidden(element):
            return False

        if element.tag in EXCLUDED_TAGS:
            return False

        role = self.role(element)
        if role in NON_ROLES:
            return False

        if role in INTERACTIVE_ROLES or role == "heading" or role in LANDMARK_ROLES:
            return True

        if element.has_attribute("role") or element.tag in FORM_TAGS:
            return True

        if element.tag in FRAME_TAGS:
            return True

        if role == "generic" and element.tag in ("div", "span"):
            return get_test_id(element) is not None or bool(element.get_attribute("aria-label"))

        return False

    def is_addressable(self, element: DomNode, role: Optional[str] = None) -> bool:
        """Whether an included element gets a ref: interactive, test-id, explicit role, or frame owner."""
        role = role or self.refined_role(element)
        if self.is_interactive(element, role):
            return True
        if get_test_id(element) is not None or element.tag in FRAME_TAGS:
            return True
        explicit = self.explicit_role(element)
        return bool(explicit) and explicit not in NON_ROLES and explicit != "generic"
