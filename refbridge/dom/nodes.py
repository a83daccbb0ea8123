"""
Python-side model of a DOM captured by the injected bridge.

The bridge serializes the live document into plain JSON (see ``dom/scripts.py``).
Every element carries an integer node id that is stable for the lifetime of the
isolated world it was captured from, so the same element seen in two captures
maps to the same id. ``DomDocument.from_capture`` turns that JSON back into a
linked tree the snapshot builder and the structural analyzer can walk.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union


class NodeKind(str, Enum):
    """Kinds of captured nodes."""
    ELEMENT = "element"
    TEXT = "text"


class DomNode:
    """One captured element or text node."""

    __slots__ = (
        "kind",
        "node_id",
        "tag",
        "attributes",
        "text",
        "display",
        "visibility",
        "value",
        "checked",
        "selected",
        "disabled",
        "slotted",
        "children",
        "shadow_children",
        "assigned",
        "parent",
        "shadow_host",
    )

    def __init__(
        self,
        kind: NodeKind,
        node_id: Optional[int] = None,
        tag: str = "",
        attributes: Optional[Dict[str, str]] = None,
        text: str = "",
        display: str = "block",
        visibility: str = "visible",
        value: Optional[str] = None,
        checked: Union[bool, str, None] = None,
        selected: Optional[bool] = None,
        disabled: bool = False,
        slotted: bool = False,
    ):
        self.kind = kind
        self.node_id = node_id
        self.tag = tag
        self.attributes: Dict[str, str] = attributes or {}
        self.text = text
        self.display = display
        self.visibility = visibility
        self.value = value
        self.checked = checked
        self.selected = selected
        self.disabled = disabled
        self.slotted = slotted
        self.children: List['DomNode'] = []
        self.shadow_children: Optional[List['DomNode']] = None
        self.assigned: List['DomNode'] = []
        # Composed parent: the light-DOM parent element, or the shadow host
        # for the top-level nodes of a shadow tree.
        self.parent: Optional['DomNode'] = None
        self.shadow_host: Optional['DomNode'] = None

    @property
    def is_element(self) -> bool:
        return self.kind is NodeKind.ELEMENT

    @property
    def is_text(self) -> bool:
        return self.kind is NodeKind.TEXT

    @property
    def has_shadow_root(self) -> bool:
        return self.shadow_children is not None

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    @property
    def element_children(self) -> List['DomNode']:
        """Light-DOM element children, in document order."""
        return [c for c in self.children if c.is_element]

    @property
    def composed_element_children(self) -> List['DomNode']:
        """Light-DOM element children followed by the shadow root's element children."""
        children = self.element_children
        if self.shadow_children:
            children = children + [c for c in self.shadow_children if c.is_element]
        return children

    def text_content(self) -> str:
        """Concatenated text of all light-DOM descendant text nodes (DOM ``textContent``)."""
        if self.is_text:
            return self.text
        return "".join(child.text_content() for child in self.children)

    def direct_texts(self) -> List[str]:
        """Trimmed, non-empty text of immediate text-node children."""
        texts = []
        for child in self.children:
            if child.is_text:
                stripped = child.text.strip()
                if stripped:
                    texts.append(stripped)
        return texts

    def iter_descendants(self) -> Iterator['DomNode']:
        """Pre-order walk over descendant elements, shadow trees included."""
        for child in self.composed_element_children:
            yield child
            yield from child.iter_descendants()

    def __repr__(self) -> str:
        if self.is_text:
            return f"<DomNode text={self.text[:20]!r}>"
        return f"<DomNode {self.tag} id={self.node_id}>"


class DomDocument:
    """A captured document rooted at ``body``."""

    def __init__(self, body: Optional[DomNode], url: str = "", active_id: Optional[int] = None):
        self.body = body
        self.url = url
        self.active_id = active_id
        self.nodes: Dict[int, DomNode] = {}
        self._by_dom_id: Dict[str, DomNode] = {}
        self._labels: Dict[str, DomNode] = {}
        if body is not None:
            self._index(body, in_shadow=False)

    def _index(self, node: DomNode, in_shadow: bool) -> None:
        if not node.is_element:
            return
        if node.node_id is not None:
            self.nodes[node.node_id] = node
        if not in_shadow:
            dom_id = node.get_attribute("id")
            if dom_id and dom_id not in self._by_dom_id:
                self._by_dom_id[dom_id] = node
            if node.tag == "label":
                target = node.get_attribute("for")
                if target and target not in self._labels:
                    self._labels[target] = node
        for child in node.children:
            self._index(child, in_shadow)
        for child in node.shadow_children or []:
            self._index(child, True)

    def find(self, node_id: int) -> Optional[DomNode]:
        """Look up an element by its bridge node id."""
        return self.nodes.get(node_id)

    def get_element_by_id(self, dom_id: str) -> Optional[DomNode]:
        """Document-scope ``getElementById`` (shadow trees are not searched)."""
        return self._by_dom_id.get(dom_id)

    def label_for(self, dom_id: str) -> Optional[DomNode]:
        """The first ``<label for=dom_id>`` in the document."""
        return self._labels.get(dom_id)

    @classmethod
    def from_capture(cls, data: Optional[Dict[str, Any]]) -> 'DomDocument':
        """
        Build a document from the bridge's ``capture()`` payload.

        Args:
            data: ``{"url": ..., "activeId": ..., "body": <element>}``

        Returns:
            DomDocument (with ``body`` set to None for body-less documents)
        """
        data = data or {}
        body_data = data.get("body")
        pending_slots: List[tuple] = []
        body = _parse_node(body_data, None, pending_slots) if body_data else None
        document = cls(body, url=data.get("url") or "", active_id=data.get("activeId"))

        for slot, assigned_data in pending_slots:
            for item in assigned_data:
                if item.get("k") == "text":
                    text_node = DomNode(NodeKind.TEXT, text=item.get("text") or "", slotted=True)
                    text_node.parent = slot.parent
                    slot.assigned.append(text_node)
                    continue
                target = document.find(item.get("id"))
                if target is not None:
                    slot.assigned.append(target)
        return document


def _parse_node(data: Dict[str, Any], parent: Optional[DomNode], pending_slots: List[tuple]) -> DomNode:
    if data.get("k") == NodeKind.TEXT.value:
        node = DomNode(NodeKind.TEXT, text=data.get("text") or "", slotted=bool(data.get("slotted")))
        node.parent = parent
        return node

    node = DomNode(
        NodeKind.ELEMENT,
        node_id=data.get("id"),
        tag=(data.get("tag") or "").lower(),
        attributes=dict(data.get("attrs") or {}),
        display=data.get("display") or "block",
        visibility=data.get("visibility") or "visible",
        value=data.get("value"),
        checked=data.get("checked"),
        selected=data.get("selected"),
        disabled=bool(data.get("disabled")),
        slotted=bool(data.get("slotted")),
    )
    node.parent = parent
    node.children = [_parse_node(child, node, pending_slots) for child in data.get("children") or []]

    shadow = data.get("shadow")
    if shadow is not None:
        node.shadow_children = []
        for child_data in shadow:
            child = _parse_node(child_data, node, pending_slots)
            child.shadow_host = node
            node.shadow_children.append(child)

    if "assigned" in data:
        pending_slots.append((node, data.get("assigned") or []))
    return node
