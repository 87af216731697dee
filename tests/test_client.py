"""Contract tests for the content delivery API client."""

import httpx
import pytest
import respx

from conftest import BASE, HOST, entries_url, make_entries, not_found_body, paginated
from core.errors import ContentTypeNotFound, InvalidCredentials, UpstreamError
from ingestion.client import ContentstackClient

PAGE = 10


def small_client(**kwargs) -> ContentstackClient:
    return ContentstackClient(
        host=HOST,
        api_key="test-key",
        delivery_token="test-token",
        environment="test",
        page_size=PAGE,
        **kwargs,
    )


def test_default_page_size_and_ceiling() -> None:
    assert ContentstackClient.PAGE_SIZE == 100
    assert ContentstackClient.MAX_PAGES == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("total", [0, 1, PAGE - 1, PAGE, PAGE + 1, 3 * PAGE + 4])
async def test_fetch_all_returns_every_entry_once(total: int) -> None:
    """Pagination returns exactly the remote collection."""
    entries = make_entries(total)

    with respx.mock(assert_all_called=True) as router:
        router.get(entries_url("documentation")).mock(side_effect=paginated(entries))
        result = await small_client().fetch_all_entries("documentation")

    uids = [e.uid for e in result]
    assert len(result) == total
    assert uids == [e["uid"] for e in entries]
    assert len(set(uids)) == total
    assert result.truncated is False


@pytest.mark.asyncio
async def test_fetch_all_stops_at_page_ceiling_without_raising() -> None:
    entries = make_entries(100 * PAGE + 1)

    with respx.mock(assert_all_called=True) as router:
        route = router.get(entries_url("documentation")).mock(side_effect=paginated(entries))
        result = await small_client().fetch_all_entries("documentation")

    assert len(result) == 100 * PAGE
    assert result.truncated is True
    assert result.pages == 100
    assert route.call_count == 100


@pytest.mark.asyncio
async def test_fetch_all_sends_pagination_and_credentials() -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(entries_url("faq")).respond(200, json={"entries": []})
        await small_client().fetch_all_entries("faq", include=["category"])

    params = route.calls[0].request.url.params
    assert params["environment"] == "test"
    assert params["skip"] == "0"
    assert params["limit"] == str(PAGE)
    assert params["api_key"] == "test-key"
    assert params["access_token"] == "test-token"
    assert params.get_list("include[]") == ["category"]


@pytest.mark.asyncio
async def test_fetch_all_drops_duplicate_uids() -> None:
    pages = [
        httpx.Response(200, json={"entries": make_entries(PAGE)}),
        httpx.Response(200, json={"entries": [{"uid": "doc-0"}, {"uid": "doc-new"}]}),
    ]

    with respx.mock() as router:
        router.get(entries_url("documentation")).mock(side_effect=pages)
        result = await small_client().fetch_all_entries("documentation")

    assert [e.uid for e in result][-1] == "doc-new"
    assert len(result) == PAGE + 1


@pytest.mark.asyncio
async def test_fetch_all_accepts_items_shape() -> None:
    with respx.mock() as router:
        router.get(entries_url("faq")).respond(
            200, json={"items": [{"uid": "faq-1", "question": "How?"}], "count": 1}
        )
        result = await small_client().fetch_all_entries("faq")

    assert [e.question for e in result] == ["How?"]


@pytest.mark.asyncio
async def test_fetch_all_classifies_missing_content_type() -> None:
    with respx.mock() as router:
        router.get(entries_url("docs")).respond(422, json=not_found_body("docs"))

        with pytest.raises(ContentTypeNotFound) as exc:
            await small_client().fetch_all_entries("docs")

    assert exc.value.error_code == 118
    assert exc.value.content_type == "docs"
    assert exc.value.errors == {"content_type_uid": ["is not valid."]}
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_fetch_all_classifies_bad_credentials() -> None:
    with respx.mock() as router:
        router.get(entries_url("documentation")).respond(
            412, json={"error_code": 109, "error_message": "api_key is not valid."}
        )

        with pytest.raises(InvalidCredentials):
            await small_client().fetch_all_entries("documentation")


@pytest.mark.asyncio
async def test_fetch_all_wraps_network_errors() -> None:
    with respx.mock() as router:
        router.get(entries_url("documentation")).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(UpstreamError, match="Network error"):
            await small_client().fetch_all_entries("documentation")


@pytest.mark.asyncio
async def test_fetch_entry_returns_none_on_404(client) -> None:
    with respx.mock(assert_all_called=True) as router:
        router.get(f"{BASE}/content_types/documentation/entries/missing").respond(
            404, json={"error_code": 141, "error_message": "The requested object doesn't exist."}
        )
        entry = await client.fetch_entry_by_id("documentation", "missing")

    assert entry is None


@pytest.mark.asyncio
async def test_fetch_entry_raises_on_500(client) -> None:
    with respx.mock() as router:
        router.get(f"{BASE}/content_types/documentation/entries/doc-1").respond(
            500, json={"error_message": "Internal failure"}
        )

        with pytest.raises(UpstreamError) as exc:
            await client.fetch_entry_by_id("documentation", "doc-1")

    assert exc.value.status_code == 500
    assert exc.value.error_message == "Internal failure"


@pytest.mark.asyncio
async def test_fetch_entry_raises_generic_message_without_body(client) -> None:
    with respx.mock() as router:
        router.get(f"{BASE}/content_types/documentation/entries/doc-1").respond(503, text="down")

        with pytest.raises(UpstreamError, match="HTTP 503"):
            await client.fetch_entry_by_id("documentation", "doc-1")


@pytest.mark.asyncio
async def test_fetch_entry_requests_references_in_one_call(client) -> None:
    body = {
        "entry": {
            "uid": "doc-1",
            "title": "Install",
            "category": [{"uid": "cat-1", "title": "Guides"}],
            "related_docs": [{"uid": "doc-2", "title": "Upgrade"}],
        }
    }

    with respx.mock(assert_all_called=True) as router:
        route = router.get(f"{BASE}/content_types/documentation/entries/doc-1").respond(200, json=body)
        entry = await client.fetch_entry_by_id(
            "documentation", "doc-1", include=["category", "related_docs"], version="2"
        )

    assert route.call_count == 1
    params = route.calls[0].request.url.params
    assert params.get_list("include[]") == ["category", "related_docs"]
    assert params["version"] == "2"
    assert entry.category_title == "Guides"
    assert entry.related_docs[0]["uid"] == "doc-2"


@pytest.mark.asyncio
async def test_fetch_entry_retries_once_without_invalid_reference(client) -> None:
    invalid = httpx.Response(
        422,
        json={
            "error_code": 141,
            "error_message": "The requested reference field is invalid.",
            "errors": {"category": ["is not a valid reference field."]},
        },
    )
    ok = httpx.Response(200, json={"entry": {"uid": "doc-1", "title": "Install"}})

    with respx.mock() as router:
        route = router.get(f"{BASE}/content_types/documentation/entries/doc-1").mock(
            side_effect=[invalid, ok]
        )
        entry = await client.fetch_entry_by_id(
            "documentation", "doc-1", include=["category", "related_docs"]
        )

    assert entry.uid == "doc-1"
    assert route.call_count == 2
    assert route.calls[1].request.url.params.get_list("include[]") == ["related_docs"]


@pytest.mark.asyncio
async def test_probe_succeeds_on_empty_listing(client) -> None:
    with respx.mock(assert_all_called=True) as router:
        route = router.get(entries_url("faq")).respond(200, json={"entries": []})
        await client.probe("faq")

    assert route.calls[0].request.url.params["limit"] == "1"
