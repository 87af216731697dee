import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Any, List, Optional

from core.entities import Entry, ResourceKind
from core.errors import user_message
from core.roles import UserContext
from processing.search import SearchHit
from services.config import load_config
from services.logging import setup_logging
from workflows.portal import SEARCHABLE_KINDS, KnowledgePortal

logger = logging.getLogger(__name__)


def _entry_json(entry: Entry) -> dict:
    return entry.model_dump(mode="json")


def _hit_json(hit: SearchHit) -> dict:
    return {
        "resource_kind": hit.resource_kind.value if hit.resource_kind else None,
        "score": hit.score,
        "entry": _entry_json(hit.entry),
    }


def _date(value: str) -> datetime:
    return datetime.fromisoformat(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Knowledge portal command line")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    docs = sub.add_parser("docs", help="List documentation")
    docs.add_argument("--category", default=None)

    doc = sub.add_parser("doc", help="Show one documentation entry")
    doc.add_argument("uid")
    doc.add_argument("--version", default=None)

    faqs = sub.add_parser("faqs", help="List FAQs and categories")
    faqs.add_argument("--category", default=None)

    search = sub.add_parser("search", help="Search documentation and FAQs")
    search.add_argument("query")
    search.add_argument(
        "--kind",
        action="append",
        choices=[k.value for k in SEARCHABLE_KINDS],
        help="Resource kind to search (repeatable)",
    )

    feedback = sub.add_parser("feedback", help="Submit feedback for an entry")
    feedback.add_argument("content_uid")
    feedback.add_argument("rating", type=int, choices=range(1, 6))
    feedback.add_argument("--content-type", default=ResourceKind.DOCUMENTATION.value)
    feedback.add_argument("--comment", default=None)
    feedback.add_argument("--email", default=None)
    feedback.add_argument("--role", default="guest")

    analytics = sub.add_parser("analytics", help="Feedback analytics")
    analytics.add_argument("--start", type=_date, default=None)
    analytics.add_argument("--end", type=_date, default=None)
    analytics.add_argument("--role", default="guest")

    resolve = sub.add_parser("resolve", help="Find the content type UID for a resource")
    resolve.add_argument("resource", choices=[k.value for k in ResourceKind])

    validate = sub.add_parser("validate", help="Check for unresolved references")
    validate.add_argument("resource", choices=[k.value for k in ResourceKind])
    validate.add_argument("--uid", default=None, help="Check a single entry")

    migration = sub.add_parser("migration", help="Check entries for expected fields")
    migration.add_argument("resource", choices=[k.value for k in ResourceKind])
    migration.add_argument("--field", action="append", dest="fields", help="Expected field (repeatable)")

    locate = sub.add_parser("locate", help="Find which content type holds an entry")
    locate.add_argument("uid")
    locate.add_argument("--resource", choices=[k.value for k in ResourceKind], default=ResourceKind.DOCUMENTATION.value)

    return parser


async def run_command(portal: KnowledgePortal, args: argparse.Namespace) -> Any:
    if args.command == "docs":
        result = await portal.list_documentation(category=args.category)
        return {"truncated": result.truncated, "entries": [_entry_json(e) for e in result]}

    if args.command == "doc":
        entry = await portal.get_documentation(args.uid, version=args.version)
        if entry is None:
            raise LookupError(
                f'Documentation with UID "{args.uid}" not found. '
                "Please ensure it is published in the configured environment."
            )
        return _entry_json(entry)

    if args.command == "faqs":
        faqs, categories = await portal.list_faqs(category=args.category)
        return {
            "truncated": faqs.truncated,
            "faqs": [_entry_json(e) for e in faqs],
            "categories": [_entry_json(c) for c in categories],
        }

    if args.command == "search":
        kinds: List[ResourceKind] = [ResourceKind(k) for k in args.kind] if args.kind else list(SEARCHABLE_KINDS)
        hits = await portal.universal_search(args.query, kinds)
        return [_hit_json(hit) for hit in hits]

    if args.command == "feedback":
        user = UserContext.from_stored(args.role, email=args.email)
        return await portal.submit_feedback(
            user,
            content_uid=args.content_uid,
            content_type=args.content_type,
            rating=args.rating,
            comment=args.comment,
        )

    if args.command == "analytics":
        user = UserContext.from_stored(args.role)
        return asdict(await portal.feedback_analytics(user, start=args.start, end=args.end))

    if args.command == "resolve":
        resolution = await portal.resolve(ResourceKind(args.resource))
        return asdict(resolution)

    if args.command == "validate":
        kind = ResourceKind(args.resource)
        if args.uid:
            return asdict(await portal.validate_references(kind, args.uid))
        return asdict(await portal.validate_all_references(kind))

    if args.command == "migration":
        return asdict(await portal.check_content_migration(ResourceKind(args.resource), args.fields))

    if args.command == "locate":
        location = await portal.locate_entry(args.uid, ResourceKind(args.resource))
        return {
            "found": location.found,
            "content_type": location.content_type,
            "attempted": location.attempted,
            "entry": _entry_json(location.entry) if location.entry else None,
        }

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or logging.INFO)

    config = load_config()
    if not args.log_level:
        logging.getLogger().setLevel(config.LOG_LEVEL.upper())

    portal = KnowledgePortal.from_config(config)
    try:
        output = await run_command(portal, args)
    except LookupError as e:
        print(str(e), file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Command {args.command} failed")
        print(user_message(e, args.command), file=sys.stderr)
        return 1
    finally:
        await portal.aclose()

    print(json.dumps(output, indent=2, default=str))
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
