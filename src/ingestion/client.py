"""
Client for the headless CMS content delivery API
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from core.entities import Entry, FetchResult
from core.errors import ContentTypeNotFound, InvalidCredentials, InvalidReference, UpstreamError
from ingestion.base import classify_error, mask_secrets, normalize_entries, raw_entries
from services.config import Config

logger = logging.getLogger(__name__)


def _json_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {}


class ContentstackClient:
    """
    Paginated listing and single-entry lookups against the delivery API.
    No retries on transient failures; callers re-fetch on user action.
    """

    PAGE_SIZE = 100
    MAX_PAGES = 100

    def __init__(
        self,
        *,
        host: str,
        api_key: Optional[str],
        delivery_token: Optional[str],
        environment: str = "production",
        timeout: float = 30.0,
        page_size: int = PAGE_SIZE,
        max_pages: int = MAX_PAGES,
    ):
        self.host = host
        self.api_key = api_key
        self.delivery_token = delivery_token
        self.environment = environment
        self.timeout = timeout
        self.page_size = page_size
        self.max_pages = max_pages

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "ContentstackClient":
        return cls(
            host=config.api_host,
            api_key=config.CONTENTSTACK_API_KEY,
            delivery_token=config.CONTENTSTACK_DELIVERY_TOKEN,
            environment=config.CONTENTSTACK_ENVIRONMENT,
            timeout=config.HTTP_TIMEOUT,
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/v3"

    def _params(self, include: Sequence[str], extra: Optional[Dict[str, Any]] = None) -> List[Tuple[str, Any]]:
        params: List[Tuple[str, Any]] = [("environment", self.environment)]
        for key, value in (extra or {}).items():
            if value is not None:
                params.append((key, value))
        params.append(("api_key", self.api_key or ""))
        params.append(("access_token", self.delivery_token or ""))
        for name in include:
            params.append(("include[]", name))
        return params

    async def _request(
        self,
        client: httpx.AsyncClient,
        path: str,
        *,
        content_type: str,
        include: List[str],
        extra: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """
        Issue a GET and classify failures.
        With ``allow_not_found`` a plain 404 yields None instead of raising.
        An invalid reference is dropped from ``include`` (in place) and the
        request retried once.
        """
        url = f"{self.base_url}{path}"
        retried = False

        while True:
            try:
                resp = await client.get(url, params=self._params(include, extra))
            except httpx.RequestError as e:
                raise UpstreamError(
                    f"Network error while contacting the content API: {e}",
                    content_type=content_type,
                ) from e

            logger.debug(f"GET {mask_secrets(str(resp.request.url))} -> {resp.status_code}")

            if resp.is_success:
                return resp

            body = _json_body(resp)
            if allow_not_found and resp.status_code == 404:
                error = classify_error(404, body, content_type=content_type, include=include)
                if isinstance(error, (ContentTypeNotFound, InvalidCredentials)):
                    raise error
                return None

            error = classify_error(
                resp.status_code,
                body,
                content_type=content_type,
                include=include,
                reason=resp.reason_phrase,
            )
            if isinstance(error, InvalidReference) and not retried:
                logger.warning(
                    f"Reference field '{error.field}' is invalid for {content_type}; retrying without it"
                )
                include.remove(error.field)
                retried = True
                continue

            logger.error(
                f"Content API error for {content_type}: status={resp.status_code} "
                f"code={error.error_code} message={error}"
            )
            raise error

    def _decode(self, resp: httpx.Response, content_type: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                f"Content API returned an unreadable response: {e}",
                content_type=content_type,
                status_code=resp.status_code,
            ) from e

    async def fetch_all_entries(
        self,
        content_type: str,
        include: Optional[Sequence[str]] = None,
    ) -> FetchResult:
        """
        Fetch every entry of a content type, one page at a time.

        Stops on an empty page, on a short page, or after ``max_pages``
        pages. Hitting the ceiling does not raise; the result is flagged
        as truncated instead.
        """
        include_refs = list(include or [])
        path = f"/content_types/{content_type}/entries"
        result = FetchResult()
        seen = set()
        skip = 0

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while result.pages < self.max_pages:
                resp = await self._request(
                    client,
                    path,
                    content_type=content_type,
                    include=include_refs,
                    extra={"skip": skip, "limit": self.page_size},
                )
                payload = self._decode(resp, content_type)
                page_size = len(raw_entries(payload))
                result.pages += 1

                if page_size == 0:
                    break

                for entry in normalize_entries(payload):
                    if entry.uid in seen:
                        logger.debug(f"Duplicate uid {entry.uid} in {content_type} listing, skipped")
                        continue
                    seen.add(entry.uid)
                    result.entries.append(entry)

                if page_size < self.page_size:
                    break

                skip += self.page_size
            else:
                result.truncated = True
                logger.warning(
                    f"Stopped fetching {content_type} after {self.max_pages} pages; "
                    f"returning {len(result.entries)} entries"
                )

        logger.info(f"Fetched {len(result.entries)} {content_type} entries in {result.pages} pages")
        return result

    async def fetch_entry_by_id(
        self,
        content_type: str,
        uid: str,
        include: Optional[Sequence[str]] = None,
        version: Optional[str] = None,
    ) -> Optional[Entry]:
        """
        Fetch a single entry with its named references inlined.
        Returns None when the entry does not exist.
        """
        path = f"/content_types/{content_type}/entries/{uid}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await self._request(
                client,
                path,
                content_type=content_type,
                include=list(include or []),
                extra={"version": version},
                allow_not_found=True,
            )

        if resp is None:
            logger.info(f"Entry {uid} not found in {content_type}")
            return None

        data = self._decode(resp, content_type)
        entry = data.get("entry") if isinstance(data, dict) else None
        if not entry:
            return None
        return Entry.model_validate(entry)

    async def probe(self, content_type: str) -> None:
        """
        Minimal listing request; returns if the content type answers at all.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            await self._request(
                client,
                f"/content_types/{content_type}/entries",
                content_type=content_type,
                include=[],
                extra={"skip": 0, "limit": 1},
            )
