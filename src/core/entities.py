from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from core.roles import Role, parse_role

ANONYMOUS_EMAIL = "anonymous@example.com"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResourceKind(str, Enum):
    """
    Logical resources served by the portal.
    """
    DOCUMENTATION = "documentation"
    FAQ = "faq"
    CATEGORY = "category"
    FEEDBACK = "feedback"

    @property
    def includes(self) -> List[str]:
        """Reference fields expanded inline when fetching a single entry."""
        return list(REFERENCE_INCLUDES[self])

    @property
    def env_key(self) -> str:
        return f"CONTENTSTACK_{self.name}_UID"


REFERENCE_INCLUDES: Dict[ResourceKind, tuple] = {
    ResourceKind.DOCUMENTATION: ("category", "related_docs"),
    ResourceKind.FAQ: ("category",),
    ResourceKind.CATEGORY: (),
    ResourceKind.FEEDBACK: (),
}


def _unresolved(ref: Any) -> bool:
    if isinstance(ref, str):
        return not ref
    return not isinstance(ref, dict) or not ref.get("uid")


def broken_references(data: Dict[str, Any]) -> List[str]:
    """
    Paths of reference values that did not resolve to an entry, e.g.
    ``category`` or ``related_docs[2]``. A bare UID string counts as resolved.
    """
    broken: List[str] = []
    for name in ("category", "related_docs"):
        value = data.get(name)
        if isinstance(value, list):
            broken.extend(f"{name}[{i}]" for i, ref in enumerate(value) if _unresolved(ref))
        elif isinstance(value, dict) and _unresolved(value):
            broken.append(name)
    return broken


class CategoryRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    uid: str
    title: Optional[str] = None


class Entry(BaseModel):
    """
    A content entry as returned by the delivery API.
    Only the fields the portal relies on are declared; everything else
    is kept as extra data.
    """
    model_config = ConfigDict(extra="allow")

    uid: str
    title: Optional[str] = None
    question: Optional[str] = None
    category: Optional[Union[CategoryRef, str]] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    # set while parsing; references the API could not resolve
    broken_refs: List[str] = Field(default_factory=list, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _record_broken_refs(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {**data, "broken_refs": broken_references(data)}
        return data

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        # reference fields arrive as a list of objects
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict) and not value.get("uid"):
            return None
        if value == "":
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(tag) for tag in value]

    @property
    def display_title(self) -> str:
        return self.title or self.question or "Untitled"

    @property
    def category_uid(self) -> Optional[str]:
        if isinstance(self.category, CategoryRef):
            return self.category.uid
        return self.category

    @property
    def category_title(self) -> Optional[str]:
        if isinstance(self.category, CategoryRef):
            return self.category.title
        return None

    def get_field(self, path: str) -> Any:
        """Look up a possibly dotted field path, e.g. ``category.title``."""
        value: Any = self.model_dump()
        for part in path.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
        return value


@dataclass
class FetchResult:
    """
    Every entry collected by a paginated fetch.
    ``truncated`` is set when the page ceiling stopped the fetch early.
    """
    entries: List[Entry] = field(default_factory=list)
    truncated: bool = False
    pages: int = 0

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class ContentTypeBinding:
    resource: ResourceKind
    identifier: str
    source: Literal["configured", "resolved"] = "configured"


class FeedbackEvent(BaseModel):
    content_uid: str
    content_type: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    user_email: str = ANONYMOUS_EMAIL
    user_role: Role = Role.GUEST
    timestamp: str = Field(default_factory=utc_timestamp)

    @field_validator("user_email", mode="before")
    @classmethod
    def _default_email(cls, value: Any) -> Any:
        return value or ANONYMOUS_EMAIL

    @field_validator("user_role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> Role:
        return parse_role(value)


class ContentViewEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_type: Literal["content_view"] = "content_view"
    content_uid: str
    content_type: str
    timestamp: str = Field(default_factory=utc_timestamp)


class SearchEvent(BaseModel):
    event_type: Literal["search"] = "search"
    query: str
    results_count: int
    filters: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)


class FeedbackSubmittedEvent(BaseModel):
    event_type: Literal["feedback_submitted"] = "feedback_submitted"
    content_uid: str
    rating: int
    content_type: str
    timestamp: str = Field(default_factory=utc_timestamp)


AnalyticsEvent = Annotated[
    Union[ContentViewEvent, SearchEvent, FeedbackSubmittedEvent],
    Field(discriminator="event_type"),
]

_analytics_adapter: TypeAdapter = TypeAdapter(AnalyticsEvent)


def parse_analytics_event(data: Dict[str, Any]) -> Union[ContentViewEvent, SearchEvent, FeedbackSubmittedEvent]:
    return _analytics_adapter.validate_python(data)
