"""
Content-type resolution.
Probes plausible content type UIDs when the configured one does not exist.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.entities import ContentTypeBinding, Entry, ResourceKind
from core.errors import ContentTypeNotFound
from ingestion.client import ContentstackClient

logger = logging.getLogger(__name__)


CANDIDATE_UIDS: Dict[ResourceKind, tuple] = {
    ResourceKind.DOCUMENTATION: (
        "documentation", "documentations", "doc", "docs",
        "knowledge_base", "kb", "article", "articles",
    ),
    ResourceKind.FAQ: (
        "faq", "faqs", "faq_entry", "faq_entries",
        "question", "questions", "frequently_asked_questions",
    ),
    ResourceKind.CATEGORY: (
        "category", "categories", "doc_category", "doc_categories",
        "topic", "topics",
    ),
    ResourceKind.FEEDBACK: (
        "feedback", "feedbacks", "feedback_entry", "feedback_entries",
        "user_feedback",
    ),
}


@dataclass(frozen=True)
class Resolution:
    found: bool
    identifier: Optional[str] = None
    attempted: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EntryLocation:
    found: bool
    content_type: Optional[str] = None
    entry: Optional[Entry] = None
    attempted: List[str] = field(default_factory=list)


class ContentTypeResolver:
    """
    Finds the content type UID that actually answers for a resource.

    A successful probe (even one with no entries) resolves the resource.
    "Content type not found" moves on to the next candidate; any other
    error is raised straight away.
    """

    def __init__(
        self,
        client: ContentstackClient,
        candidates: Optional[Dict[ResourceKind, Sequence[str]]] = None,
    ):
        self.client = client
        self.candidates = {k: list(v) for k, v in (candidates or CANDIDATE_UIDS).items()}
        self._resolved: Dict[ResourceKind, ContentTypeBinding] = {}

    def bindings(self) -> Dict[ResourceKind, ContentTypeBinding]:
        return dict(self._resolved)

    def cached(self, resource: ResourceKind) -> Optional[ContentTypeBinding]:
        return self._resolved.get(resource)

    async def resolve(
        self,
        resource: ResourceKind,
        configured: Optional[str] = None,
        known_missing: Sequence[str] = (),
    ) -> Resolution:
        """
        Return the first candidate that answers. Identifiers in
        ``known_missing`` count as attempted but are not requested again.
        """
        binding = self._resolved.get(resource)
        if binding is not None:
            return Resolution(found=True, identifier=binding.identifier)

        candidates = list(self.candidates.get(resource, []))
        if configured and configured not in candidates:
            candidates.insert(0, configured)

        attempted: List[str] = []
        for uid in candidates:
            attempted.append(uid)
            if uid in known_missing:
                continue
            try:
                await self.client.probe(uid)
            except ContentTypeNotFound:
                logger.debug(f"Content type '{uid}' does not exist")
                continue

            logger.info(f"Resolved {resource.value} content type to '{uid}' after {len(attempted)} probe(s)")
            self._resolved[resource] = ContentTypeBinding(resource, uid, source="resolved")
            return Resolution(found=True, identifier=uid, attempted=attempted)

        logger.warning(f"No content type found for {resource.value}; tried {', '.join(attempted)}")
        return Resolution(found=False, attempted=attempted)

    async def locate_entry(self, resource: ResourceKind, uid: str) -> EntryLocation:
        """Find which candidate content type holds the entry ``uid``."""
        attempted: List[str] = []
        for content_type in self.candidates.get(resource, []):
            attempted.append(content_type)
            try:
                entry = await self.client.fetch_entry_by_id(content_type, uid)
            except ContentTypeNotFound:
                continue
            if entry is not None:
                logger.info(f"Entry {uid} found in content type '{content_type}'")
                return EntryLocation(found=True, content_type=content_type, entry=entry, attempted=attempted)

        logger.info(f"Entry {uid} not found in any {resource.value} content type")
        return EntryLocation(found=False, attempted=attempted)
