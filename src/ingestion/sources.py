"""
Resource sources: documentation, FAQs, categories and feedback.
All of them share one paginated fetch and apply their own filtering afterwards.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from core.entities import Entry, FetchResult, ResourceKind
from core.errors import ContentTypeNotFound, remediation_message
from ingestion.client import ContentstackClient
from ingestion.resolver import ContentTypeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContentRepository:
    """
    Fetches resources by logical name, falling back to the content type
    resolver when the configured UID turns out not to exist.
    """

    def __init__(
        self,
        client: ContentstackClient,
        resolver: ContentTypeResolver,
        content_types: Dict[ResourceKind, str],
    ):
        self.client = client
        self.resolver = resolver
        self.content_types = dict(content_types)

    def content_type(self, kind: ResourceKind) -> str:
        binding = self.resolver.cached(kind)
        if binding is not None:
            return binding.identifier
        return self.content_types.get(kind, kind.value)

    async def _with_fallback(self, kind: ResourceKind, op: Callable[[str], Awaitable[T]]) -> T:
        identifier = self.content_type(kind)
        try:
            return await op(identifier)
        except ContentTypeNotFound as e:
            logger.warning(f"Content type '{identifier}' not found for {kind.value}; probing alternatives")
            resolution = await self.resolver.resolve(kind, configured=identifier, known_missing=[identifier])

            if not resolution.found or resolution.identifier == identifier:
                raise ContentTypeNotFound(
                    remediation_message(kind.value, kind.env_key, resolution.attempted),
                    error_code=e.error_code,
                    error_message=e.error_message,
                    content_type=identifier,
                    errors=e.errors,
                    status_code=e.status_code,
                ) from e

            return await op(resolution.identifier)

    async def fetch_all(self, kind: ResourceKind) -> FetchResult:
        async def op(content_type: str) -> FetchResult:
            return await self.client.fetch_all_entries(content_type, include=kind.includes)

        return await self._with_fallback(kind, op)

    async def fetch_one(self, kind: ResourceKind, uid: str, version: Optional[str] = None) -> Optional[Entry]:
        async def op(content_type: str) -> Optional[Entry]:
            return await self.client.fetch_entry_by_id(
                content_type, uid, include=kind.includes, version=version
            )

        return await self._with_fallback(kind, op)


class ResourceSource(ABC):
    """
    Base interface for every resource kind.
    """

    kind: ResourceKind

    def __init__(self, repository: ContentRepository):
        self.repository = repository

    @abstractmethod
    def filter(self, entries: List[Entry], **filters: Any) -> List[Entry]:
        raise NotImplementedError

    async def fetch_items(self, **filters: Any) -> FetchResult:
        result = await self.repository.fetch_all(self.kind)
        entries = self.filter(result.entries, **filters)
        return FetchResult(entries=entries, truncated=result.truncated, pages=result.pages)

    async def fetch_item(self, uid: str, version: Optional[str] = None) -> Optional[Entry]:
        return await self.repository.fetch_one(self.kind, uid, version=version)


def _in_category(entry: Entry, category: Optional[str]) -> bool:
    return not category or entry.category_uid == category


class DocumentationSource(ResourceSource):
    kind = ResourceKind.DOCUMENTATION

    def filter(
        self,
        entries: List[Entry],
        category: Optional[str] = None,
        version: Optional[str] = None,
    ) -> List[Entry]:
        return [
            e for e in entries
            if _in_category(e, category)
            and (not version or str(e.get_field("version")) == version)
        ]

    async def versions(self, title: str) -> List[str]:
        """Distinct versions published under the same title, in listing order."""
        result = await self.repository.fetch_all(self.kind)
        versions: List[str] = []
        for entry in result.entries:
            version = entry.get_field("version")
            if entry.title == title and version and str(version) not in versions:
                versions.append(str(version))
        return versions


class FAQSource(ResourceSource):
    kind = ResourceKind.FAQ

    def filter(
        self,
        entries: List[Entry],
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> List[Entry]:
        wanted = set(tags or [])
        return [
            e for e in entries
            if _in_category(e, category) and (not wanted or wanted & set(e.tags))
        ]


class CategorySource(ResourceSource):
    kind = ResourceKind.CATEGORY

    def filter(self, entries: List[Entry]) -> List[Entry]:
        return entries


class FeedbackSource(ResourceSource):
    kind = ResourceKind.FEEDBACK

    def filter(
        self,
        entries: List[Entry],
        content_type: Optional[str] = None,
        content_uid: Optional[str] = None,
    ) -> List[Entry]:
        return [
            e for e in entries
            if (not content_type or e.get_field("content_type") == content_type)
            and (not content_uid or e.get_field("content_uid") == content_uid)
        ]


def create_sources(repository: ContentRepository) -> Dict[ResourceKind, ResourceSource]:
    return {
        source.kind: source
        for source in (
            DocumentationSource(repository),
            FAQSource(repository),
            CategorySource(repository),
            FeedbackSource(repository),
        )
    }
