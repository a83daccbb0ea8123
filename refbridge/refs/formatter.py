"""
Formatting and parsing of element refs across frames.

Ref format:
- Main frame: "e1", "e2", "e3" (local refs only)
- Child frames: "f1_e1", "f2_e5" (frame ordinal + local ref)
"""

import re
from typing import Any, Callable, Dict, NamedTuple, TypeVar

from pydantic import BaseModel

from ..core.errors import InvalidRefFormatError


GLOBAL_REF_PATTERN = re.compile(r"^(?:f(\d+)_)?(e\d+)$")
LOCAL_REF_PATTERN = re.compile(r"^e\d+$")
SNAPSHOT_REF_PATTERN = re.compile(r"\[ref=(e\d+)\]")

ModelT = TypeVar("ModelT", bound=BaseModel)


class ParsedRef(NamedTuple):
    frame_ordinal: int
    local_ref: str


class RefFormatter:
    """Converts between frame-local refs and global refs."""

    @staticmethod
    def to_global(frame_ordinal: int, local_ref: str) -> str:
        """
        Convert a frame ordinal and local ref into a global ref.

        Args:
            frame_ordinal: Frame number (0 = main frame)
            local_ref: Local element ref (e1, e2, ...)

        Returns:
            Global ref string; main-frame refs are not prefixed
        """
        if not LOCAL_REF_PATTERN.match(local_ref):
            raise InvalidRefFormatError(local_ref)
        if frame_ordinal == 0:
            return local_ref
        return f"f{frame_ordinal}_{local_ref}"

    @staticmethod
    def parse(global_ref: str) -> ParsedRef:
        """
        Split a global ref into frame ordinal and local ref.

        Raises:
            InvalidRefFormatError: if the string is not "e<n>" or "f<n>_e<n>"
        """
        match = GLOBAL_REF_PATTERN.match(global_ref) if isinstance(global_ref, str) else None
        if not match:
            raise InvalidRefFormatError(str(global_ref))
        ordinal = int(match.group(1)) if match.group(1) else 0
        if match.group(1) is not None and ordinal == 0:
            # "f0_e1" would alias "e1"; the main frame ordinal is never printed
            raise InvalidRefFormatError(global_ref)
        return ParsedRef(ordinal, match.group(2))

    @staticmethod
    def is_local(ref: str) -> bool:
        return bool(LOCAL_REF_PATTERN.match(ref))

    @classmethod
    def get_local_ref(cls, global_ref: str) -> str:
        return cls.parse(global_ref).local_ref

    @classmethod
    def globalize_text(cls, text: str, frame_ordinal: int) -> str:
        """Rewrite every ``[ref=eN]`` marker of a rendered snapshot into global form."""
        if frame_ordinal == 0:
            return text
        return SNAPSHOT_REF_PATTERN.sub(
            lambda m: f"[ref={cls.to_global(frame_ordinal, m.group(1))}]", text
        )

    @classmethod
    def globalize_result(cls, result: ModelT, frame_ordinal: int) -> ModelT:
        """
        Return a copy of an analysis result with every ref rewritten into global form.

        Handles ``ref`` fields and ``contains_refs`` lists at any nesting depth.
        """
        if frame_ordinal == 0:
            return result
        return _rewrite_refs(result, lambda ref: cls.to_global(frame_ordinal, ref))


def _rewrite_refs(value: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(value, BaseModel):
        updates: Dict[str, Any] = {}
        for field_name in type(value).model_fields:
            current = getattr(value, field_name)
            if field_name == "ref" and isinstance(current, str):
                updates[field_name] = convert(current)
            elif field_name == "contains_refs":
                updates[field_name] = [convert(ref) for ref in current]
            elif isinstance(current, (BaseModel, list)):
                updates[field_name] = _rewrite_refs(current, convert)
        return value.model_copy(update=updates)
    if isinstance(value, list):
        return [_rewrite_refs(item, convert) for item in value]
    return value
