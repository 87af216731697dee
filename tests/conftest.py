"""Pytest configuration for the knowledge portal test suite."""

import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from core.entities import ResourceKind  # noqa: E402
from delivery.webhooks import AnalyticsDispatcher, FeedbackWebhook  # noqa: E402
from ingestion.client import ContentstackClient  # noqa: E402
from workflows.portal import KnowledgePortal  # noqa: E402

HOST = "cdn.test"
BASE = f"https://{HOST}/v3"
FEEDBACK_URL = "https://hooks.test/api/webhooks/feedback"
ANALYTICS_URL = "https://hooks.test/api/webhooks/analytics"


def entries_url(content_type: str) -> str:
    return f"{BASE}/content_types/{content_type}/entries"


def not_found_body(content_type: str) -> dict:
    return {
        "error_code": 118,
        "error_message": f"The Content Type '{content_type}' was not found. Please try again.",
        "errors": {"content_type_uid": ["is not valid."]},
    }


def paginated(entries: List[dict]) -> Callable[[httpx.Request], httpx.Response]:
    """Simulated listing endpoint honouring skip/limit."""

    def handler(request: httpx.Request) -> httpx.Response:
        skip = int(request.url.params["skip"])
        limit = int(request.url.params["limit"])
        return httpx.Response(200, json={"entries": entries[skip:skip + limit]})

    return handler


def make_entries(count: int, prefix: str = "doc", **fields) -> List[dict]:
    return [{"uid": f"{prefix}-{i}", "title": f"Entry {i}", **fields} for i in range(count)]


@pytest.fixture
def client() -> ContentstackClient:
    return ContentstackClient(
        host=HOST,
        api_key="test-key",
        delivery_token="test-token",
        environment="test",
    )


@pytest.fixture
def portal(client: ContentstackClient) -> KnowledgePortal:
    return KnowledgePortal(
        client,
        content_types={kind: kind.value for kind in ResourceKind},
        feedback=FeedbackWebhook(FEEDBACK_URL),
        analytics=AnalyticsDispatcher(ANALYTICS_URL),
    )
