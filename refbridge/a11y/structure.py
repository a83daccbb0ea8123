"""Structural analysis around a referenced element: ancestors, siblings, descendants."""

from typing import Any, Dict, List, Optional

from ..core.errors import AncestorLevelTooHighError, InvalidArgumentError, StaleRefError
from ..dom.analyzer import (
    extract_meaningful_texts,
    find_contained_refs,
    get_relevant_attributes,
)
from ..dom.nodes import DomDocument, DomNode
from ..refs.registry import ElementRegistry
from ..types.models import (
    AncestorInfo,
    AncestorsResult,
    AncestorTarget,
    AnchorInfo,
    BridgeConfig,
    ContainerInfo,
    DescendantInfo,
    DescendantsResult,
    OutlineItem,
    SiblingInfo,
    SiblingsResult,
)
from ..utils.text import clean_text, truncate
from .aria import AriaResolver, get_test_id, is_heading_tag


TEXT_LIMIT = 200
OUTLINE_TEXT_LIMIT = 80

FULL_TEXT_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "label", "button", "a"})
OUTLINE_TAGS = frozenset({"button", "a", "label"})


class _Tally:
    """Running totals of one descendants traversal."""

    def __init__(self, limit: int):
        self.limit = limit
        self.count = 0
        self.max_depth = 0

    @property
    def exhausted(self) -> bool:
        return self.count >= self.limit


class StructuralAnalyzer:
    """
    Answers structural questions about registered elements of one document.

    The analyzer works on a fresh capture of the frame and the frame's
    registry. Every operation first resolves the ref: a ref never allocated
    in this epoch raises ``UnknownRefError``; a ref whose element is no longer
    present raises ``StaleRefError``.
    """

    def __init__(
        self,
        document: DomDocument,
        registry: ElementRegistry,
        config: Optional[BridgeConfig] = None,
        resolver: Optional[AriaResolver] = None,
    ):
        self.document = document
        self.registry = registry
        self.config = config or BridgeConfig()
        self.resolver = resolver or AriaResolver(document)

    def get_ancestors(self, ref: str) -> AncestorsResult:
        """
        Describe every ancestor of the element, from its parent up to (excluding) body.

        Args:
            ref: Frame-local ref

        Returns:
            AncestorsResult with level 1 being the immediate parent
        """
        target = self._locate(ref)

        ancestors: List[AncestorInfo] = []
        current = target.parent
        level = 1
        while current is not None and current is not self.document.body:
            ancestors.append(
                AncestorInfo(
                    level=level,
                    tag_name=current.tag,
                    attributes=get_relevant_attributes(current),
                    child_elements=len(current.composed_element_children),
                    contains_refs=find_contained_refs(current, self.registry),
                )
            )
            current = current.parent
            level += 1

        return AncestorsResult(
            target=AncestorTarget(ref=ref, tag_name=target.tag, text=clean_text(target.text_content())),
            ancestors=ancestors,
        )

    def get_siblings(self, ref: str, ancestor_level: int) -> SiblingsResult:
        """
        Describe the children of the container ``ancestor_level`` parents above the element.

        Args:
            ref: Frame-local ref
            ancestor_level: How many parents to climb to reach the container

        Returns:
            SiblingsResult; ``target_sibling_index`` is None for level 0

        Raises:
            AncestorLevelTooHighError: climbing reaches body before ``ancestor_level`` steps
        """
        self._check_level(ancestor_level)
        target = self._locate(ref)
        container = self._climb(ref, target, ancestor_level)
        unit = self._climb(ref, target, max(ancestor_level - 1, 0))

        children = container.composed_element_children
        target_index = None
        if ancestor_level > 0:
            target_index = next((i for i, child in enumerate(children) if child is unit), None)

        siblings = [
            SiblingInfo(
                index=index,
                tag_name=child.tag,
                attributes=get_relevant_attributes(child),
                contains_refs=find_contained_refs(child, self.registry),
                contains_text=extract_meaningful_texts(child),
                outline=self._outline(child),
            )
            for index, child in enumerate(children)
        ]

        return SiblingsResult(
            ancestor_level=ancestor_level,
            container_at=ContainerInfo(tag_name=container.tag, attributes=get_relevant_attributes(container)),
            target_sibling_index=target_index,
            siblings=siblings,
        )

    def get_descendants(self, ref: str, ancestor_level: int) -> DescendantsResult:
        """
        Dump the subtree of the ancestor ``ancestor_level`` parents above the element.

        The walk is bounded by ``max_depth``, ``max_siblings`` children per
        element and ``max_descendants`` entries in total; hitting a bound
        stops the walk there without raising.
        """
        self._check_level(ancestor_level)
        target = self._locate(ref)
        anchor = self._climb(ref, target, ancestor_level)

        tally = _Tally(self.config.max_descendants)
        descendants = self._traverse(anchor, 0, tally)

        return DescendantsResult(
            ancestor_at=AnchorInfo(
                level=ancestor_level,
                tag_name=anchor.tag,
                attributes=get_relevant_attributes(anchor),
            ),
            descendants=descendants,
            total_descendants=tally.count,
            max_depth_reached=tally.max_depth,
        )

    def _locate(self, ref: str) -> DomNode:
        entry = self.registry.resolve(ref)
        node = self.document.find(entry.element_handle)
        if node is None:
            self.registry.retire(ref)
            raise StaleRefError(ref, self.registry.role)
        return node

    @staticmethod
    def _check_level(ancestor_level: int) -> None:
        if not isinstance(ancestor_level, int) or ancestor_level < 0:
            raise InvalidArgumentError("ancestor_level", ancestor_level, "must be a non-negative integer")

    def _climb(self, ref: str, element: DomNode, levels: int) -> DomNode:
        current = element
        for step in range(levels):
            parent = current.parent
            if parent is None or parent is self.document.body:
                raise AncestorLevelTooHighError(ref, levels, step)
            current = parent
        return current

    def _outline(self, element: DomNode) -> List[OutlineItem]:
        limit = self.config.max_outline_items
        items: List[OutlineItem] = []
        if limit <= 0:
            return items

        for node in element.iter_descendants():
            testid = get_test_id(node)
            explicit = self.resolver.explicit_role(node)
            if not (is_heading_tag(node.tag) or node.tag in OUTLINE_TAGS or testid or explicit):
                continue

            role = self.resolver.role(node)
            text = clean_text(node.text_content())
            items.append(
                OutlineItem(
                    role=role if role != "generic" else None,
                    tag=node.tag if role == "generic" else None,
                    text=truncate(text, OUTLINE_TEXT_LIMIT) if text else None,
                    testid=testid,
                )
            )
            if len(items) >= limit:
                break
        return items

    def _traverse(self, element: DomNode, depth: int, tally: _Tally) -> List[DescendantInfo]:
        if depth >= self.config.max_depth:
            return []

        result: List[DescendantInfo] = []
        for index, child in enumerate(element.composed_element_children[: self.config.max_siblings]):
            if tally.exhausted:
                break
            tally.count += 1
            tally.max_depth = max(tally.max_depth, depth + 1)

            info: Dict[str, Any] = {
                "depth": depth + 1,
                "index": index,
                "tag_name": child.tag,
                "attributes": get_relevant_attributes(child),
            }

            child_ref = self.registry.ref_for(child.node_id)
            if child_ref is not None:
                entry = self.registry.get(child_ref)
                info["ref"] = child_ref
                info["role"] = entry.role
                info["name"] = entry.name

            direct_text = " ".join(child.direct_texts())
            if direct_text:
                info["direct_text"] = truncate(direct_text, TEXT_LIMIT)

            if child.tag in FULL_TEXT_TAGS:
                full_text = clean_text(child.text_content())
                if full_text and full_text != direct_text:
                    info["full_text"] = truncate(full_text, TEXT_LIMIT)

            grandchildren = child.composed_element_children
            if grandchildren:
                info["child_count"] = len(grandchildren)
                info["descendants"] = self._traverse(child, depth + 1, tally)

            result.append(DescendantInfo(**info))
        return result
