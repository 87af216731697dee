"""
KnowledgePortal - orchestrates content fetches, search, feedback and analytics.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from core.entities import Entry, FeedbackEvent, FetchResult, ResourceKind
from core.errors import PermissionDenied
from core.roles import UserContext
from delivery.webhooks import AnalyticsDispatcher, FeedbackWebhook
from ingestion.client import ContentstackClient
from ingestion.resolver import ContentTypeResolver, EntryLocation, Resolution
from ingestion.sources import ContentRepository, ResourceSource, create_sources
from processing.analytics import FeedbackAnalytics, summarize_feedback
from processing.quality import (
    MIGRATION_FIELDS,
    MigrationReport,
    ReferenceReport,
    ReferenceSummary,
    check_migration,
    check_references,
    summarize_references,
)
from processing.search import FIELD_WEIGHTS, SearchHit, search_scored
from services.config import Config

logger = logging.getLogger(__name__)

SEARCHABLE_KINDS = (ResourceKind.DOCUMENTATION, ResourceKind.FAQ)


class KnowledgePortal:
    """
    Entry point for everything the UI layer needs.
    All state is request-scoped apart from the resolver's binding cache.
    """

    def __init__(
        self,
        client: ContentstackClient,
        *,
        content_types: Dict[ResourceKind, str],
        feedback: FeedbackWebhook,
        analytics: AnalyticsDispatcher,
        resolver: Optional[ContentTypeResolver] = None,
    ):
        self.client = client
        self.resolver = resolver or ContentTypeResolver(client)
        self.repository = ContentRepository(client, self.resolver, content_types)
        self.sources: Dict[ResourceKind, ResourceSource] = create_sources(self.repository)
        self.feedback = feedback
        self.analytics = analytics

    @classmethod
    def from_config(cls, config: Config) -> "KnowledgePortal":
        return cls(
            ContentstackClient.from_config(config),
            content_types={kind: config.content_type_uid(kind) for kind in ResourceKind},
            feedback=FeedbackWebhook(config.FEEDBACK_WEBHOOK_URL, timeout=config.HTTP_TIMEOUT),
            analytics=AnalyticsDispatcher(config.ANALYTICS_WEBHOOK_URL, timeout=config.HTTP_TIMEOUT),
        )

    # ----------------------------
    # Listings
    # ----------------------------

    async def list_entries(self, kind: ResourceKind, **filters: Any) -> FetchResult:
        return await self.sources[kind].fetch_items(**filters)

    async def list_documentation(self, category: Optional[str] = None) -> FetchResult:
        return await self.list_entries(ResourceKind.DOCUMENTATION, category=category)

    async def list_categories(self) -> List[Entry]:
        """Best-effort: an empty list when categories cannot be loaded."""
        try:
            result = await self.list_entries(ResourceKind.CATEGORY)
        except Exception as e:
            logger.warning(f"Error fetching categories: {e}")
            return []
        return result.entries

    async def list_faqs(self, category: Optional[str] = None) -> tuple[FetchResult, List[Entry]]:
        """FAQs together with the category list, fetched concurrently."""
        faqs, categories = await asyncio.gather(
            self.list_entries(ResourceKind.FAQ, category=category),
            self.list_categories(),
        )
        return faqs, categories

    async def list_feedback(self, content_type: Optional[str] = None) -> FetchResult:
        return await self.list_entries(ResourceKind.FEEDBACK, content_type=content_type)

    async def feedback_for(self, content_uid: str) -> FetchResult:
        return await self.list_entries(ResourceKind.FEEDBACK, content_uid=content_uid)

    # ----------------------------
    # Single entries
    # ----------------------------

    async def get_entry(self, kind: ResourceKind, uid: str, version: Optional[str] = None) -> Optional[Entry]:
        entry = await self.sources[kind].fetch_item(uid, version=version)
        if entry is not None:
            metadata = {"title": entry.display_title}
            if entry.get_field("version"):
                metadata["version"] = entry.get_field("version")
            self.analytics.track_content_view(entry.uid, kind.value, **metadata)
        return entry

    async def get_documentation(self, uid: str, version: Optional[str] = None) -> Optional[Entry]:
        return await self.get_entry(ResourceKind.DOCUMENTATION, uid, version=version)

    async def documentation_versions(self, title: str) -> List[str]:
        return await self.sources[ResourceKind.DOCUMENTATION].versions(title)

    # ----------------------------
    # Search
    # ----------------------------

    async def search(self, kind: ResourceKind, query: str, **filters: Any) -> List[SearchHit]:
        result = await self.list_entries(kind, **filters)
        hits = search_scored(result.entries, query, FIELD_WEIGHTS.get(kind))
        return [SearchHit(entry=hit.entry, score=hit.score, resource_kind=kind) for hit in hits]

    async def _search_kind(self, kind: ResourceKind, query: str) -> List[SearchHit]:
        try:
            return await self.search(kind, query)
        except Exception as e:
            logger.warning(f"Search over {kind.value} failed, skipping it: {e}")
            return []

    async def universal_search(
        self,
        query: str,
        kinds: Sequence[ResourceKind] = SEARCHABLE_KINDS,
    ) -> List[SearchHit]:
        """
        Search every kind concurrently and concatenate the results in kind order.
        One kind failing contributes nothing; the others are unaffected.
        """
        per_kind = await asyncio.gather(*(self._search_kind(kind, query) for kind in kinds))
        hits = [hit for kind_hits in per_kind for hit in kind_hits]
        self.analytics.track_search(query, len(hits), {"kinds": [kind.value for kind in kinds]})
        return hits

    # ----------------------------
    # Feedback & analytics
    # ----------------------------

    async def submit_feedback(
        self,
        user: UserContext,
        *,
        content_uid: str,
        content_type: str,
        rating: int,
        comment: Optional[str] = None,
        user_email: Optional[str] = None,
    ) -> Any:
        if not user.can("feedback", "write"):
            raise PermissionDenied(user.role.value, "feedback", "write")

        event = FeedbackEvent(
            content_uid=content_uid,
            content_type=content_type,
            rating=rating,
            comment=comment,
            user_email=user_email or user.email,
            user_role=user.role,
        )
        ack = await self.feedback.submit_feedback(event)
        self.analytics.track_feedback(content_uid, rating, content_type)
        return ack

    async def feedback_analytics(
        self,
        user: UserContext,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> FeedbackAnalytics:
        if not user.can("analytics", True):
            raise PermissionDenied(user.role.value, "analytics", True)

        result = await self.list_entries(ResourceKind.FEEDBACK)
        return summarize_feedback(result.entries, start=start, end=end)

    # ----------------------------
    # Content quality
    # ----------------------------

    async def validate_references(self, kind: ResourceKind, uid: str) -> ReferenceReport:
        entry = await self.repository.fetch_one(kind, uid)
        if entry is None:
            return ReferenceReport(entry_uid=uid, valid=False, error="Entry not found")
        return check_references(entry)

    async def validate_all_references(self, kind: ResourceKind) -> ReferenceSummary:
        """References are inlined by the listing, so one paginated fetch covers every entry."""
        result = await self.list_entries(kind)
        return summarize_references(self.repository.content_type(kind), result.entries)

    async def check_content_migration(
        self,
        kind: ResourceKind,
        expected_fields: Optional[Sequence[str]] = None,
    ) -> MigrationReport:
        fields = list(expected_fields) if expected_fields else list(MIGRATION_FIELDS.get(kind, ()))
        result = await self.list_entries(kind)
        return check_migration(self.repository.content_type(kind), result.entries, fields)

    async def locate_entry(self, uid: str, kind: ResourceKind = ResourceKind.DOCUMENTATION) -> EntryLocation:
        return await self.resolver.locate_entry(kind, uid)

    # ----------------------------
    # Housekeeping
    # ----------------------------

    async def resolve(self, kind: ResourceKind) -> Resolution:
        return await self.resolver.resolve(kind, configured=self.repository.content_types.get(kind))

    async def aclose(self) -> None:
        await self.analytics.drain()
