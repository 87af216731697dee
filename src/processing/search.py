"""
Client-side fuzzy search over fully downloaded entries.
The index is rebuilt on every call; entry sets are small.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rapidfuzz import fuzz, utils

from core.entities import Entry, ResourceKind

logger = logging.getLogger(__name__)

DOCUMENTATION_WEIGHTS: Dict[str, float] = {
    "title": 0.7,
    "description": 0.6,
    "content": 0.5,
    "tags": 0.4,
    "category.title": 0.3,
}

FAQ_WEIGHTS: Dict[str, float] = {
    "question": 0.8,
    "answer": 0.6,
    "tags": 0.4,
}

FIELD_WEIGHTS: Dict[ResourceKind, Dict[str, float]] = {
    ResourceKind.DOCUMENTATION: DOCUMENTATION_WEIGHTS,
    ResourceKind.FAQ: FAQ_WEIGHTS,
}

# Lower threshold = stricter matching
DEFAULT_THRESHOLD = 0.3
MIN_MATCH_CHAR_LENGTH = 2

_HTML_TAG = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class SearchHit:
    entry: Entry
    score: float
    resource_kind: Optional[ResourceKind] = None


def _texts(value: Any) -> List[str]:
    """Flatten a field value (string, list, rich text JSON) to searchable strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (int, float)):
        return [str(value)]
    if isinstance(value, dict):
        return [text for item in value.values() for text in _texts(item)]
    if isinstance(value, (list, tuple)):
        return [text for item in value for text in _texts(item)]
    return []


def _prepare(text: str) -> str:
    return utils.default_process(_HTML_TAG.sub(" ", text))


def similarity(query: str, text: str) -> float:
    """
    Similarity in [0, 1] of an already-processed query against a field value.
    Long fields are matched on their best-aligned substring.
    """
    if not query or not text:
        return 0.0
    if len(text) >= len(query):
        return fuzz.partial_ratio(query, text) / 100.0
    return fuzz.ratio(query, text) / 100.0


class SearchIndex:
    """
    Weighted fuzzy index over a fixed entry set.
    """

    def __init__(
        self,
        entries: Iterable[Entry],
        field_weights: Dict[str, float],
        threshold: float = DEFAULT_THRESHOLD,
        min_match_char_length: int = MIN_MATCH_CHAR_LENGTH,
    ):
        self.field_weights = dict(field_weights)
        self.threshold = threshold
        self.min_match_char_length = min_match_char_length
        self._documents = [
            (
                entry,
                {
                    field: [t for t in (_prepare(s) for s in _texts(entry.get_field(field))) if t]
                    for field in self.field_weights
                },
            )
            for entry in entries
        ]

    def __len__(self) -> int:
        return len(self._documents)

    def search(self, query: str) -> List[SearchHit]:
        processed = utils.default_process(query or "")
        if len(processed) < self.min_match_char_length:
            return []

        cutoff = 1.0 - self.threshold
        hits: List[SearchHit] = []

        for entry, fields in self._documents:
            score = 0.0
            for field, texts in fields.items():
                best = max((similarity(processed, text) for text in texts), default=0.0)
                if best >= cutoff:
                    score += self.field_weights[field] * best
            if score > 0:
                hits.append(SearchHit(entry=entry, score=round(score, 4)))

        # stable sort: equal scores keep input order
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits


def search_scored(
    entries: Sequence[Entry],
    query: str,
    field_weights: Optional[Dict[str, float]] = None,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[SearchHit]:
    """
    Ranked hits with scores. A blank query returns every entry unranked.
    """
    if not query or not query.strip():
        return [SearchHit(entry=entry, score=0.0) for entry in entries]

    index = SearchIndex(entries, field_weights or DOCUMENTATION_WEIGHTS, threshold=threshold)
    hits = index.search(query)
    logger.debug(f"Search '{query}' matched {len(hits)} of {len(index)} entries")
    return hits


def search(
    entries: Sequence[Entry],
    query: str,
    field_weights: Optional[Dict[str, float]] = None,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[Entry]:
    if not query or not query.strip():
        return list(entries)
    return [hit.entry for hit in search_scored(entries, query, field_weights, threshold)]
