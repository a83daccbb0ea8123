"""DOM analysis helpers for element inspection and text extraction."""

from typing import Dict, List

from ..refs.registry import ElementRegistry
from ..utils.text import clean_text
from .nodes import DomNode


RELEVANT_ATTRIBUTES = ("class", "id", "data-testid", "role", "aria-label")

# Elements whose whole subtree text counts as one meaningful text
SEMANTIC_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "button", "a", "label"})


def get_relevant_attributes(element: DomNode) -> Dict[str, str]:
    """The non-empty subset of attributes useful for building selectors."""
    attrs = {}
    for name in RELEVANT_ATTRIBUTES:
        value = element.get_attribute(name)
        if value:
            attrs[name] = value
    return attrs


def find_contained_refs(container: DomNode, registry: ElementRegistry) -> List[str]:
    """
    Refs whose elements are strict descendants of ``container``.

    Args:
        container: Element to search under (shadow trees included)
        registry: Registry of the frame the container belongs to

    Returns:
        Refs in allocation order
    """
    refs = []
    for node in container.iter_descendants():
        ref = registry.ref_for(node.node_id)
        if ref is not None:
            refs.append(ref)
    order = {ref: index for index, ref in enumerate(registry.refs())}
    return sorted(refs, key=lambda ref: order.get(ref, len(order)))


def extract_meaningful_texts(element: DomNode) -> List[str]:
    """
    Extract the distinct texts a reader would use to recognise ``element``.

    Visits text nodes and semantic elements (headings, buttons, links,
    labels) in document order below ``element``. Each contributes its trimmed
    text; duplicates and single characters are dropped.
    """
    texts: List[str] = []
    _collect_texts(element, texts)

    seen = set()
    unique = []
    for text in texts:
        if len(text) > 1 and text not in seen:
            seen.add(text)
            unique.append(text)
    return unique


def _collect_texts(node: DomNode, texts: List[str]) -> None:
    for child in node.children + (node.shadow_children or []):
        if child.is_text:
            text = child.text.strip()
            if text:
                texts.append(text)
            continue
        if child.tag in SEMANTIC_TAGS:
            text = clean_text(child.text_content())
            if text:
                texts.append(text)
        _collect_texts(child, texts)
