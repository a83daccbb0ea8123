"""Core type definitions for RefBridge."""

import os
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


# Operation results

class NavigationInfo(BaseModel):
    """Metadata captured while navigating a role's page."""
    success: bool
    requested_url: str
    final_url: str
    page_title: str = ""
    status_code: Optional[int] = None
    load_time_ms: int = 0
    redirect_count: Optional[int] = None
    content_type: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class SnapshotResult(BaseModel):
    """Rendered accessibility snapshot of one page."""
    text: str
    element_count: int
    navigation: Optional[NavigationInfo] = None


class Bounds(BaseModel):
    """Bounding client rect of an element."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class InspectResult(BaseModel):
    """Live details about one referenced element."""
    ref: str
    role: str
    name: str
    tag_name: str
    text: str = ""
    visible: bool = False
    bounds: Bounds = Field(default_factory=Bounds)
    attributes: Dict[str, str] = Field(default_factory=dict)


class AncestorTarget(BaseModel):
    """The element an ancestry analysis starts from."""
    ref: str
    tag_name: str
    text: str = ""


class AncestorInfo(BaseModel):
    """One level of the ancestor chain (level 1 = immediate parent)."""
    level: int
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    child_elements: int = 0
    contains_refs: List[str] = Field(default_factory=list)


class AncestorsResult(BaseModel):
    target: AncestorTarget
    ancestors: List[AncestorInfo] = Field(default_factory=list)


class OutlineItem(BaseModel):
    """Shallow cue about a sibling's content: role (preferred) or tag, text and test id."""
    role: Optional[str] = None
    tag: Optional[str] = None
    text: Optional[str] = None
    testid: Optional[str] = None


class SiblingInfo(BaseModel):
    index: int
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    contains_refs: List[str] = Field(default_factory=list)
    contains_text: List[str] = Field(default_factory=list)
    outline: List[OutlineItem] = Field(default_factory=list)


class ContainerInfo(BaseModel):
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)


class SiblingsResult(BaseModel):
    """
    Children of the container found ``ancestor_level`` parents above the target.

    ``target_sibling_index`` is the index of the container child that lies on the
    path to the target. It is ``None`` for level 0, where the container is the
    target itself.
    """
    ancestor_level: int
    container_at: ContainerInfo
    target_sibling_index: Optional[int] = None
    siblings: List[SiblingInfo] = Field(default_factory=list)


class AnchorInfo(BaseModel):
    level: int
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)


class DescendantInfo(BaseModel):
    depth: int
    index: int
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    ref: Optional[str] = None
    role: Optional[str] = None
    name: Optional[str] = None
    direct_text: Optional[str] = None
    full_text: Optional[str] = None
    child_count: Optional[int] = None
    descendants: List['DescendantInfo'] = Field(default_factory=list)


class DescendantsResult(BaseModel):
    ancestor_at: AnchorInfo
    descendants: List[DescendantInfo] = Field(default_factory=list)
    total_descendants: int = 0
    max_depth_reached: int = 0


DescendantInfo.model_rebuild()


# Configuration

def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        from ..core.errors import ConfigurationError
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


class BridgeConfig(BaseModel):
    """Performance limits for structural analysis inside a bridge."""
    max_depth: int = Field(default=4, ge=1)
    max_siblings: int = Field(default=15, ge=1)
    max_descendants: int = Field(default=100, ge=1)
    max_outline_items: int = Field(default=6, ge=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> 'BridgeConfig':
        """
        Build a config from BRIDGE_* environment variables (a .env file is honoured).

        Explicit keyword overrides win over the environment.
        """
        load_dotenv()
        values: Dict[str, Any] = {}
        for field_name, env_name in (
            ("max_depth", "BRIDGE_MAX_DEPTH"),
            ("max_siblings", "BRIDGE_MAX_SIBLINGS"),
            ("max_descendants", "BRIDGE_MAX_DESCENDANTS"),
            ("max_outline_items", "BRIDGE_MAX_OUTLINE_ITEMS"),
        ):
            value = _env_int(env_name)
            if value is not None:
                values[field_name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class RoleConfig(BaseModel):
    """Externally supplied settings for one named role."""
    auth_path: Optional[str] = None
    default_url: Optional[str] = None

    @field_validator("default_url")
    @classmethod
    def validate_default_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and "://" not in v:
            raise ValueError("default_url must be an absolute URL")
        return v


class RolesConfiguration(BaseModel):
    roles: Dict[str, RoleConfig] = Field(default_factory=dict)


class BrowserParams(BaseModel):
    """Constructor parameters for MultiRoleBrowser."""
    headless: bool = False
    browser: Literal["chromium"] = "chromium"
    browser_args: List[str] = Field(default_factory=list)
    verbose: int = Field(default=0, ge=0, le=3)
    navigation_timeout_ms: int = Field(default=30000, gt=0)
    frame_injection_timeout_ms: int = Field(default=3000, gt=0)
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "networkidle"
    world_name_prefix: str = "refbridge"
    default_role: str = "default"
    context_options: Dict[str, Any] = Field(default_factory=dict)
