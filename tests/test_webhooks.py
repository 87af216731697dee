"""Tests for feedback submission and analytics dispatch."""

import json
import logging

import httpx
import pytest
import respx
from pydantic import ValidationError

from conftest import ANALYTICS_URL, FEEDBACK_URL
from core.entities import (
    ANONYMOUS_EMAIL,
    ContentViewEvent,
    FeedbackEvent,
    SearchEvent,
    parse_analytics_event,
)
from core.errors import DeliveryError
from core.roles import Role
from delivery.webhooks import AnalyticsDispatcher, FeedbackWebhook


def feedback_event(**overrides) -> FeedbackEvent:
    fields = dict(content_uid="doc-1", content_type="documentation", rating=4, comment="Helpful")
    fields.update(overrides)
    return FeedbackEvent(**fields)


def test_feedback_event_defaults() -> None:
    event = feedback_event(user_email="", user_role="not-a-role")

    assert event.user_email == ANONYMOUS_EMAIL
    assert event.user_role is Role.GUEST
    assert event.timestamp


@pytest.mark.parametrize("rating", [0, 6])
def test_feedback_event_rejects_out_of_range_rating(rating: int) -> None:
    with pytest.raises(ValidationError):
        feedback_event(rating=rating)


def test_analytics_events_are_a_tagged_union() -> None:
    event = parse_analytics_event({"event_type": "search", "query": "cli", "results_count": 3})
    assert isinstance(event, SearchEvent)

    view = parse_analytics_event(
        {"event_type": "content_view", "content_uid": "d1", "content_type": "documentation", "title": "Install"}
    )
    assert isinstance(view, ContentViewEvent)
    assert view.model_dump()["title"] == "Install"


@pytest.mark.asyncio
async def test_submit_feedback_posts_event_and_returns_ack() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.post(FEEDBACK_URL).respond(200, json={"success": True})
        ack = await FeedbackWebhook(FEEDBACK_URL).submit_feedback(feedback_event())

    assert ack == {"success": True}
    payload = json.loads(route.calls[0].request.content)
    assert payload["content_uid"] == "doc-1"
    assert payload["rating"] == 4
    assert payload["user_email"] == ANONYMOUS_EMAIL
    assert payload["user_role"] == "guest"
    assert "timestamp" in payload


@pytest.mark.asyncio
async def test_submit_feedback_raises_on_server_error() -> None:
    with respx.mock() as router:
        router.post(FEEDBACK_URL).respond(500, json={"success": False})

        with pytest.raises(DeliveryError) as exc:
            await FeedbackWebhook(FEEDBACK_URL).submit_feedback(feedback_event())

    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_submit_feedback_raises_when_unreachable() -> None:
    with respx.mock() as router:
        router.post(FEEDBACK_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(DeliveryError, match="unreachable"):
            await FeedbackWebhook(FEEDBACK_URL).submit_feedback(feedback_event())


@pytest.mark.asyncio
async def test_track_event_posts_in_background() -> None:
    dispatcher = AnalyticsDispatcher(ANALYTICS_URL)

    with respx.mock(assert_all_called=True) as router:
        route = router.post(ANALYTICS_URL).respond(200)
        dispatcher.track_search("install", 2, {"kinds": ["faq"]})
        await dispatcher.drain()

    payload = json.loads(route.calls[0].request.content)
    assert payload["event_type"] == "search"
    assert payload["results_count"] == 2
    assert dispatcher.pending == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "mock_kwargs",
    [
        {"return_value": httpx.Response(500)},
        {"side_effect": httpx.ConnectError("refused")},
    ],
)
async def test_track_event_never_raises(mock_kwargs, caplog) -> None:
    dispatcher = AnalyticsDispatcher(ANALYTICS_URL)

    with caplog.at_level(logging.ERROR), respx.mock() as router:
        router.post(ANALYTICS_URL).mock(**mock_kwargs)
        assert dispatcher.track_content_view("doc-1", "documentation", title="Install") is None
        await dispatcher.drain()

    assert "Analytics tracking error" in caplog.text


@pytest.mark.asyncio
async def test_track_helpers_swallow_invalid_events(caplog) -> None:
    dispatcher = AnalyticsDispatcher(ANALYTICS_URL)

    with caplog.at_level(logging.ERROR):
        dispatcher.track_feedback(None, "five", "faq")

    assert dispatcher.pending == 0
    assert "not tracked" in caplog.text


def test_track_event_without_event_loop_is_dropped(caplog) -> None:
    dispatcher = AnalyticsDispatcher(ANALYTICS_URL)

    with caplog.at_level(logging.WARNING):
        dispatcher.track_search("install", 0)

    assert dispatcher.pending == 0
    assert "No running event loop" in caplog.text
