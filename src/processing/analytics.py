"""
Aggregate statistics over feedback entries
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from core.entities import Entry


@dataclass
class FeedbackAnalytics:
    total: int = 0
    average_rating: float = 0.0
    rating_distribution: Dict[int, int] = field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )
    by_content_type: Dict[str, int] = field(default_factory=dict)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _rating(entry: Entry) -> int:
    try:
        return int(entry.get_field("rating") or 0)
    except (TypeError, ValueError):
        return 0


def in_date_range(entry: Entry, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is None and end is None:
        return True
    created = _parse_timestamp(entry.created_at)
    if created is None:
        return False
    # compare naive against naive, aware against aware
    if start is not None and (start.tzinfo is None) != (created.tzinfo is None):
        created = created.replace(tzinfo=start.tzinfo)
    if end is not None and (end.tzinfo is None) != (created.tzinfo is None):
        created = created.replace(tzinfo=end.tzinfo)
    if start is not None and created < start:
        return False
    if end is not None and created > end:
        return False
    return True


def summarize_feedback(
    entries: Iterable[Entry],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> FeedbackAnalytics:
    """
    Total, average rating, rating distribution and per-content-type counts.
    Entries without a rating count towards the total but not the distribution.
    """
    analytics = FeedbackAnalytics()
    rated = 0
    rating_sum = 0

    for entry in entries:
        if not in_date_range(entry, start, end):
            continue

        analytics.total += 1
        rating = _rating(entry)
        if 1 <= rating <= 5:
            analytics.rating_distribution[rating] += 1
            rating_sum += rating
            rated += 1

        content_type = entry.get_field("content_type") or "unknown"
        analytics.by_content_type[content_type] = analytics.by_content_type.get(content_type, 0) + 1

    if rated:
        analytics.average_rating = rating_sum / rated
    return analytics
