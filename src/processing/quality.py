"""
Content quality checks: unresolved references and missing fields
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from core.entities import Entry, ResourceKind

logger = logging.getLogger(__name__)

# Fields every migrated entry is expected to carry
MIGRATION_FIELDS: Dict[ResourceKind, tuple] = {
    ResourceKind.DOCUMENTATION: ("title", "content", "category", "version"),
    ResourceKind.FAQ: ("question", "answer", "category"),
}


@dataclass
class ReferenceReport:
    entry_uid: str
    valid: bool
    broken_refs: List[str] = field(default_factory=list)
    title: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ReferenceSummary:
    content_type: str
    total_entries: int = 0
    valid_entries: int = 0
    invalid_entries: int = 0
    broken_references: List[ReferenceReport] = field(default_factory=list)


@dataclass
class FieldCoverage:
    count: int = 0
    percentage: float = 0.0


@dataclass
class MissingFields:
    uid: str
    title: Optional[str]
    missing_fields: List[str]


@dataclass
class MigrationReport:
    content_type: str
    total_entries: int = 0
    entries_with_all_fields: int = 0
    entries_missing_fields: List[MissingFields] = field(default_factory=list)
    field_coverage: Dict[str, FieldCoverage] = field(default_factory=dict)


def check_references(entry: Entry) -> ReferenceReport:
    return ReferenceReport(
        entry_uid=entry.uid,
        valid=not entry.broken_refs,
        broken_refs=list(entry.broken_refs),
        title=entry.title,
    )


def summarize_references(content_type: str, entries: Iterable[Entry]) -> ReferenceSummary:
    summary = ReferenceSummary(content_type=content_type)
    for entry in entries:
        summary.total_entries += 1
        report = check_references(entry)
        if report.valid:
            summary.valid_entries += 1
        else:
            summary.invalid_entries += 1
            summary.broken_references.append(report)

    if summary.invalid_entries:
        logger.warning(
            f"{summary.invalid_entries} of {summary.total_entries} {content_type} entries "
            f"have unresolved references"
        )
    return summary


def check_migration(content_type: str, entries: Sequence[Entry], expected_fields: Sequence[str]) -> MigrationReport:
    """
    Which entries lack any of ``expected_fields`` (missing, empty or null),
    and how well each field is covered across the content type.
    """
    report = MigrationReport(content_type=content_type, total_entries=len(entries))
    counts = {name: 0 for name in expected_fields}

    for entry in entries:
        present = {name for name in expected_fields if entry.get_field(name)}
        for name in present:
            counts[name] += 1

        missing = [name for name in expected_fields if name not in present]
        if missing:
            report.entries_missing_fields.append(MissingFields(entry.uid, entry.title, missing))
        else:
            report.entries_with_all_fields += 1

    for name, count in counts.items():
        percentage = count / len(entries) * 100 if entries else 0.0
        report.field_coverage[name] = FieldCoverage(count=count, percentage=percentage)
    return report
