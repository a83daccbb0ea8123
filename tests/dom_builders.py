"""Builders for the JSON the injected bridge returns from ``capture()``."""

import itertools
from typing import Any, Dict, List, Optional, Union

from refbridge.dom.nodes import DomDocument

_ids = itertools.count(1)

Node = Union[Dict[str, Any], str]


def text(value: str, slotted: bool = False) -> Dict[str, Any]:
    return {"k": "text", "text": value, "slotted": slotted}


def el(
    tag: str,
    *children: Node,
    attrs: Optional[Dict[str, str]] = None,
    nid: Optional[int] = None,
    display: str = "block",
    visibility: str = "visible",
    shadow: Optional[List[Node]] = None,
    assigned: Optional[List[Dict[str, Any]]] = None,
    value: Optional[str] = None,
    checked: Union[bool, str, None] = None,
    selected: Optional[bool] = None,
    disabled: bool = False,
) -> Dict[str, Any]:
    """One captured element; plain strings among ``children`` become text nodes."""
    node: Dict[str, Any] = {
        "k": "element",
        "id": nid if nid is not None else next(_ids) + 10000,
        "tag": tag,
        "attrs": dict(attrs or {}),
        "display": display,
        "visibility": visibility,
        "slotted": False,
        "children": [text(child) if isinstance(child, str) else child for child in children],
    }
    if shadow is not None:
        node["shadow"] = [text(child) if isinstance(child, str) else child for child in shadow]
    if assigned is not None:
        node["assigned"] = assigned
    if value is not None:
        node["value"] = value
    if checked is not None:
        node["checked"] = checked
    if selected is not None:
        node["selected"] = selected
    if disabled:
        node["disabled"] = True
    return node


def assigned_element(node: Dict[str, Any]) -> Dict[str, Any]:
    return {"k": "element", "id": node["id"]}


def capture(*children: Node, active: Optional[int] = None, url: str = "https://example.test/") -> Dict[str, Any]:
    return {"url": url, "activeId": active, "body": el("body", *children)}


def document(*children: Node, active: Optional[int] = None) -> DomDocument:
    return DomDocument.from_capture(capture(*children, active=active))


def find(node: Dict[str, Any], nid: int) -> Optional[Dict[str, Any]]:
    """Depth-first search of a captured element by node id."""
    if node.get("k") != "element":
        return None
    if node.get("id") == nid:
        return node
    for child in node.get("children", []) + node.get("shadow", []):
        found = find(child, nid)
        if found is not None:
            return found
    return None


def remove(node: Dict[str, Any], nid: int) -> bool:
    """Detach the element with ``nid`` from a captured tree."""
    for key in ("children", "shadow"):
        kids = node.get(key) or []
        for index, child in enumerate(kids):
            if child.get("k") == "element" and child.get("id") == nid:
                del kids[index]
                return True
            if child.get("k") == "element" and remove(child, nid):
                return True
    return False
