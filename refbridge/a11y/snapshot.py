"""
Accessibility snapshot builder.

Walks a captured document (shadow trees, slots and ``aria-owns`` included),
filters it down to the nodes an agent can reason about, and renders the
result as an indented text tree::

    - navigation "Main"
      - link "Home" [url="/"] [ref=e1]
    - heading "Sign in" [level=1]
    - textbox "Email" [type="email"] [ref=e2]
      - text: "me@example.com"

Refs come from the frame's ``ElementRegistry``, so the same element keeps
the same ref across repeated snapshots of one document.
"""

from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Set

from ..dom.nodes import DomDocument, DomNode
from ..refs.registry import ElementRegistry
from ..types.models import SnapshotResult
from ..utils.text import clean_text, quote
from .aria import EXCLUDED_TAGS, FORM_CONTROL_TAGS, AriaResolver


INDENT = "  "
VALUE_ROLES = frozenset({"textbox", "searchbox"})
CHECKABLE_ROLES = frozenset({"checkbox", "radio", "switch", "menuitemcheckbox", "menuitemradio"})
SUBMIT_BUTTON_TYPES = frozenset({"submit", "reset"})


class WalkKind(str, Enum):
    """How a node was reached during the walk."""
    ELEMENT = "element"
    SHADOW_ROOT = "shadow_root"
    SLOTTED = "slotted"
    OWNED = "owned"


class WalkItem(NamedTuple):
    kind: WalkKind
    node: DomNode


class AXNode:
    """One rendered line of the snapshot tree."""

    __slots__ = ("role", "name", "ref", "flags", "props", "states", "interactive", "is_text", "children")

    def __init__(self, role: str, name: str = "", ref: Optional[str] = None, interactive: bool = False):
        self.role = role
        self.name = name
        self.ref = ref
        self.interactive = interactive
        self.is_text = False
        # Rendered as bare brackets: [checked], [level=2]
        self.flags: List[str] = []
        # Rendered in one bracket: [url="..." type="..."]
        self.props: Dict[str, str] = {}
        self.states: List[str] = []
        self.children: List['AXNode'] = []

    @classmethod
    def text(cls, value: str) -> 'AXNode':
        """A synthetic ``text:`` line carrying a control's value."""
        node = cls("text", value)
        node.is_text = True
        return node

    def is_bare_wrapper(self) -> bool:
        """A generic node with nothing of its own to say and no ref."""
        return (
            self.role == "generic"
            and not self.name
            and not self.flags
            and not self.props
            and not self.states
            and self.ref is None
        )

    def render(self) -> str:
        if self.is_text:
            return f"- text: {quote(self.name)}"

        line = f"- {self.role}"
        if self.name:
            line += f" {quote(self.name)}"
        for flag in self.flags:
            line += f" [{flag}]"
        if self.props:
            line += " [" + " ".join(f"{key}={quote(value)}" for key, value in self.props.items()) + "]"
        for state in self.states:
            line += f" [{state}]"
        if self.ref:
            line += f" [ref={self.ref}]"
        return line


class SnapshotBuilder:
    """
    Builds the ref-annotated accessibility tree of one captured document.

    The builder is bound to one document and one registry. Calling
    ``generate`` twice on the same capture gives the same text; calling it on
    a newer capture of the same document keeps refs of elements still present
    and retires the refs of elements that are gone.
    """

    def __init__(
        self,
        document: DomDocument,
        registry: ElementRegistry,
        resolver: Optional[AriaResolver] = None,
    ):
        self.document = document
        self.registry = registry
        self.resolver = resolver or AriaResolver(document)
        self._rendered: Set[int] = set()
        self._claimed: Dict[int, DomNode] = {}
        self._owns: Dict[int, List[DomNode]] = {}
        self._handlers: Dict[WalkKind, Callable[[DomNode], List[AXNode]]] = {
            WalkKind.ELEMENT: self._visit_element,
            WalkKind.SHADOW_ROOT: self._visit_shadow_root,
            WalkKind.SLOTTED: self._visit_slotted,
            WalkKind.OWNED: self._visit_owned,
        }

    def generate(self) -> SnapshotResult:
        """
        Walk the document and render the snapshot.

        Returns:
            SnapshotResult whose ``element_count`` equals the registry size
        """
        self._rendered = set()
        self._claim_owned_elements()

        roots: List[AXNode] = []
        if self.document.body is not None:
            for item in self._child_items(self.document.body):
                roots.extend(self._visit(item))
            for node in self._unreached_claims():
                roots.extend(self._build(node))
        roots = self._normalize(roots)

        self.registry.retain(self.document.nodes.keys())

        lines: List[str] = []
        for root in roots:
            self._render(root, 0, lines)
        return SnapshotResult(text="\n".join(lines), element_count=self.registry.size)

    # aria-owns

    def _claim_owned_elements(self) -> None:
        """
        Resolve every ``aria-owns`` reference once, in document order.

        The first owner to claim an element keeps it. A claim is ignored when
        the target is the owner itself or already sits above it, through DOM
        parents or earlier claims, and when the owner lies in a pruned
        subtree and will never render.
        """
        self._claimed = {}
        self._owns = {}
        body = self.document.body
        if body is None:
            return

        for owner in [body, *body.iter_descendants()]:
            raw = owner.get_attribute("aria-owns")
            if not raw:
                continue
            for dom_id in raw.split():
                target = self.document.get_element_by_id(dom_id)
                if target is None or target.node_id is None or target.node_id in self._claimed:
                    continue
                if self._is_above(target, owner) or not self._can_render(owner):
                    continue
                self._claimed[target.node_id] = owner
                self._owns.setdefault(owner.node_id, []).append(target)

    def _owner_or_parent(self, node: DomNode) -> Optional[DomNode]:
        owner = self._claimed.get(node.node_id)
        return owner if owner is not None else node.parent

    def _is_above(self, target: DomNode, node: DomNode) -> bool:
        """Whether ``target`` is ``node`` or one of its ancestors in the claimed tree."""
        current: Optional[DomNode] = node
        while current is not None:
            if current is target:
                return True
            current = self._owner_or_parent(current)
        return False

    @staticmethod
    def _is_pruned(element: DomNode) -> bool:
        return (
            element.display == "none"
            or element.tag in EXCLUDED_TAGS
            or element.get_attribute("aria-hidden") == "true"
        )

    def _can_render(self, node: DomNode) -> bool:
        current: Optional[DomNode] = node
        while current is not None:
            if self._is_pruned(current):
                return False
            current = self._owner_or_parent(current)
        return True

    def _unreached_claims(self) -> List[DomNode]:
        """
        Claimed elements whose owner was never walked.

        An owner can be out of reach without being pruned, e.g. a light child
        of a shadow host that no slot picks up. Its targets are rendered at
        the end of the snapshot rather than lost.
        """
        missing = []
        for node_id, owner in self._claimed.items():
            if node_id in self._rendered or owner.node_id in self._rendered:
                continue
            target = self.document.find(node_id)
            if target is None:
                continue
            current: Optional[DomNode] = target.parent
            while current is not None and not self._is_pruned(current):
                current = current.parent
            if current is None:
                missing.append(target)
        return missing

    # Walk

    def _visit(self, item: WalkItem) -> List[AXNode]:
        return self._handlers[item.kind](item.node)

    def _child_items(self, element: DomNode) -> List[WalkItem]:
        if element.has_shadow_root:
            # Light children of a host only render through the slots they are assigned to
            return [WalkItem(WalkKind.SHADOW_ROOT, element)]

        if element.tag == "slot" and element.assigned:
            return [WalkItem(WalkKind.SLOTTED, node) for node in element.assigned]

        return [WalkItem(WalkKind.ELEMENT, child) for child in element.element_children]

    def _owned_items(self, element: DomNode) -> List[WalkItem]:
        return [WalkItem(WalkKind.OWNED, node) for node in self._owns.get(element.node_id, [])]

    def _visit_element(self, node: DomNode) -> List[AXNode]:
        if node.node_id in self._claimed:
            # Rendered under its aria-owns owner instead
            return []
        return self._build(node)

    def _visit_shadow_root(self, host: DomNode) -> List[AXNode]:
        result: List[AXNode] = []
        for child in host.shadow_children or []:
            if child.is_element:
                result.extend(self._visit(WalkItem(WalkKind.ELEMENT, child)))
        return result

    def _visit_slotted(self, node: DomNode) -> List[AXNode]:
        if node.is_text:
            return []
        return self._visit_element(node)

    def _visit_owned(self, node: DomNode) -> List[AXNode]:
        return self._build(node)

    def _build(self, element: DomNode) -> List[AXNode]:
        if element.node_id in self._rendered:
            return []
        self._rendered.add(element.node_id)

        if self._is_pruned(element):
            return []

        resolver = self.resolver
        ax_node: Optional[AXNode] = None
        if resolver.should_include(element):
            role = resolver.refined_role(element)
            name = resolver.name(element)
            ax_node = AXNode(role, name, interactive=resolver.is_interactive(element, role))
            if resolver.is_addressable(element, role):
                # Allocated before walking children so refs follow document order
                ax_node.ref = self.registry.register(element, role, name)
            self._apply_props(element, ax_node)

        if ax_node is not None and ax_node.role in VALUE_ROLES:
            children: List[AXNode] = []
            value = element.value if element.value is not None else clean_text(element.text_content())
            if value:
                children.append(AXNode.text(value))
        else:
            children = []
            for item in self._child_items(element):
                children.extend(self._visit(item))

        for item in self._owned_items(element):
            children.extend(self._visit(item))

        if ax_node is None:
            return children
        ax_node.children = children
        return [ax_node]

    # Props and states

    def _apply_props(self, element: DomNode, ax_node: AXNode) -> None:
        role = ax_node.role

        checked = element.get_attribute("aria-checked")
        if checked is None and role in CHECKABLE_ROLES and element.checked is not None:
            checked = "mixed" if element.checked == "mixed" else str(bool(element.checked)).lower()
        if checked == "mixed":
            ax_node.flags.append("checked=mixed")
        elif checked == "true":
            ax_node.flags.append("checked")

        if element.get_attribute("aria-expanded") == "true":
            ax_node.flags.append("expanded")

        level = self._heading_level(element, role)
        if level:
            ax_node.flags.append(f"level={level}")

        pressed = element.get_attribute("aria-pressed")
        if pressed == "mixed":
            ax_node.flags.append("pressed=mixed")
        elif pressed == "true":
            ax_node.flags.append("pressed")

        selected = element.get_attribute("aria-selected")
        if selected == "true" or (selected is None and element.selected):
            ax_node.flags.append("selected")

        if role == "link" and element.has_attribute("href"):
            ax_node.props["url"] = element.get_attribute("href") or ""

        input_type = element.get_attribute("type")
        if input_type and (
            element.tag in FORM_CONTROL_TAGS or (role == "button" and input_type in SUBMIT_BUTTON_TYPES)
        ):
            ax_node.props["type"] = input_type

        autocomplete = element.get_attribute("autocomplete")
        if autocomplete:
            ax_node.props["autocomplete"] = autocomplete

        if element.node_id is not None and element.node_id == self.document.active_id:
            ax_node.states.append("active")
        if element.disabled or element.get_attribute("aria-disabled") == "true":
            ax_node.states.append("disabled")

    @staticmethod
    def _heading_level(element: DomNode, role: str) -> Optional[int]:
        if role != "heading":
            return None
        aria_level = element.get_attribute("aria-level")
        if aria_level and aria_level.isdigit():
            return int(aria_level)
        if len(element.tag) == 2 and element.tag[0] == "h" and element.tag[1].isdigit():
            return int(element.tag[1])
        return None

    # Normalization and rendering

    def _normalize(self, nodes: List[AXNode]) -> List[AXNode]:
        """Collapse bare generic wrappers around a single interactive node."""
        result: List[AXNode] = []
        for node in nodes:
            node.children = self._normalize(node.children)
            if (
                node.is_bare_wrapper()
                and len(node.children) == 1
                and node.children[0].interactive
                and node.children[0].ref is not None
            ):
                result.append(node.children[0])
            else:
                result.append(node)
        return result

    def _render(self, node: AXNode, depth: int, lines: List[str]) -> None:
        lines.append(INDENT * depth + node.render())
        for child in node.children:
            self._render(child, depth + 1, lines)
