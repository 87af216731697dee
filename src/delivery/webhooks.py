"""
Feedback and analytics webhooks
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Set, Type, Union

from pydantic import BaseModel, ValidationError

from core.entities import (
    ContentViewEvent,
    FeedbackEvent,
    FeedbackSubmittedEvent,
    SearchEvent,
)
from delivery.base import WebhookChannel

logger = logging.getLogger(__name__)

AnalyticsPayload = Union[ContentViewEvent, SearchEvent, FeedbackSubmittedEvent]


class FeedbackWebhook(WebhookChannel):
    name = "feedback"

    async def submit_feedback(self, event: FeedbackEvent) -> Any:
        """
        Send a feedback event. Failures propagate so the user can retry.
        """
        ack = await self.post(event.model_dump(mode="json"))
        logger.info(f"Feedback submitted for {event.content_type}/{event.content_uid} (rating={event.rating})")
        return ack


class AnalyticsDispatcher(WebhookChannel):
    """
    Fire-and-forget analytics. Each event is sent from its own task whose
    failures are logged and never reach the caller.
    """

    name = "analytics"

    def __init__(self, url: str, timeout: float = 30.0):
        super().__init__(url, timeout=timeout)
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def _send(self, payload: Dict[str, Any]) -> None:
        try:
            await self.post(payload)
        except Exception as e:
            logger.error(f"Analytics tracking error ({payload.get('event_type')}): {e}")

    def track_event(self, event: AnalyticsPayload) -> None:
        try:
            payload = event.model_dump(mode="json")
            task = asyncio.get_running_loop().create_task(self._send(payload))
        except RuntimeError:
            logger.warning(f"No running event loop; dropped analytics event {event.event_type}")
            return
        except Exception as e:
            logger.error(f"Error tracking {getattr(event, 'event_type', 'unknown')} event: {e}")
            return

        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _track(self, model: Type[BaseModel], **fields: Any) -> None:
        try:
            event = model(**fields)
        except ValidationError as e:
            logger.error(f"Invalid {model.__name__} not tracked: {e}")
            return
        self.track_event(event)

    def track_content_view(self, content_uid: str, content_type: str, **metadata: Any) -> None:
        self._track(ContentViewEvent, content_uid=content_uid, content_type=content_type, **metadata)

    def track_search(self, query: str, results_count: int, filters: Optional[Dict[str, Any]] = None) -> None:
        self._track(SearchEvent, query=query, results_count=results_count, filters=filters or {})

    def track_feedback(self, content_uid: str, rating: int, content_type: str) -> None:
        self._track(FeedbackSubmittedEvent, content_uid=content_uid, rating=rating, content_type=content_type)

    async def drain(self) -> None:
        """Wait for in-flight events; used on shutdown."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
