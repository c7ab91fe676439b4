"""Tests for the cursor tracker and in-flight suppression."""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from auth_provider import BearerTokenAuth
from gallery_client import GalleryAuthError, GalleryClient, GalleryResponseError, Page
from pagination import CursorTracker, InFlightSet
from photo_store import PhotoRecord, PhotoStore

PAGE_1 = "https://api.example.com/"
PAGE_2 = "https://api.example.com/?page=2"


def _photo(photo_id: str, likes: int = 0) -> PhotoRecord:
    return PhotoRecord(id=photo_id, thumbnail=None, web=None, likes=likes)


def _make_client(pages: dict):
    """Mock GalleryClient serving ``pages`` (url -> Page or exception)."""
    client = MagicMock()

    async def fetch_page(url):
        result = pages[url]
        if isinstance(result, Exception):
            raise result
        return result

    client.fetch_page = AsyncMock(side_effect=fetch_page)
    return client


class TestInFlightSet:
    def test_claim_once(self):
        in_flight = InFlightSet()
        assert in_flight.claim("a")
        assert not in_flight.claim("a")
        assert "a" in in_flight
        in_flight.release("a")
        assert "a" not in in_flight
        assert in_flight.claim("a")

    def test_release_unknown_is_harmless(self):
        InFlightSet().release("nope")


class TestRequestNextPage:
    @pytest.mark.asyncio
    async def test_two_pages_then_end(self):
        """Page 1 has 2 photos and a next link, page 2 one photo and none."""
        client = _make_client({
            PAGE_1: Page(photos=[_photo("image#1"), _photo("image#2")], next_url=PAGE_2),
            PAGE_2: Page(photos=[_photo("image#3")], next_url=None),
        })
        store = PhotoStore()
        tracker = CursorTracker(client, store, PAGE_1)

        assert await tracker.request_next_page() is True
        assert tracker.next_url == PAGE_2
        assert await tracker.request_next_page() is True

        assert [p.id for p in store] == ["image#1", "image#2", "image#3"]
        assert tracker.next_url is None
        assert not tracker.has_more

    @pytest.mark.asyncio
    async def test_exhausted_is_noop(self):
        client = _make_client({})
        tracker = CursorTracker(client, PhotoStore(), None)
        assert await tracker.request_next_page() is False
        client.fetch_page.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_page_returns_false_but_advances(self):
        client = _make_client({PAGE_1: Page(photos=[], next_url=PAGE_2)})
        tracker = CursorTracker(client, PhotoStore(), PAGE_1)
        assert await tracker.request_next_page() is False
        assert tracker.next_url == PAGE_2
        assert tracker.last_error is None

    @pytest.mark.asyncio
    async def test_concurrent_requests_fetch_once(self):
        """Only one request per page link may be outstanding."""
        release = asyncio.Event()
        client = MagicMock()

        async def slow_fetch(url):
            await release.wait()
            return Page(photos=[_photo("image#1")], next_url=PAGE_2)

        client.fetch_page = AsyncMock(side_effect=slow_fetch)
        store = PhotoStore()
        tracker = CursorTracker(client, store, PAGE_1)

        first = asyncio.create_task(tracker.request_next_page())
        await asyncio.sleep(0)
        assert tracker.loading
        others = await asyncio.gather(*(tracker.request_next_page() for _ in range(5)))
        release.set()

        assert await first is True
        assert others == [False] * 5
        assert client.fetch_page.call_count == 1
        assert len(store) == 1
        assert len(tracker.in_flight) == 0

    @pytest.mark.asyncio
    async def test_failure_keeps_cursor_for_retry(self):
        pages = {PAGE_1: httpx.ConnectError("connection refused")}
        client = _make_client(pages)
        store = PhotoStore()
        tracker = CursorTracker(client, store, PAGE_1)

        assert await tracker.request_next_page() is False
        assert tracker.next_url == PAGE_1
        assert tracker.has_more
        assert isinstance(tracker.last_error, httpx.ConnectError)
        assert PAGE_1 not in tracker.in_flight

        pages[PAGE_1] = Page(photos=[_photo("image#1")], next_url=None)
        assert await tracker.request_next_page() is True
        assert tracker.last_error is None
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_unauthorized_keeps_cursor(self):
        client = _make_client({PAGE_1: GalleryAuthError("401")})
        tracker = CursorTracker(client, PhotoStore(), PAGE_1)

        assert await tracker.request_next_page() is False
        assert tracker.next_url == PAGE_1
        assert isinstance(tracker.last_error, GalleryAuthError)

    @pytest.mark.asyncio
    async def test_auth_not_ready_suppresses_fetch(self):
        client = _make_client({PAGE_1: Page(photos=[_photo("image#1")])})
        auth = BearerTokenAuth()
        tracker = CursorTracker(client, PhotoStore(), PAGE_1, auth=auth)

        assert await tracker.request_next_page() is False
        client.fetch_page.assert_not_called()

        auth.set_token("tok")
        assert await tracker.request_next_page() is True

    @pytest.mark.asyncio
    async def test_duplicate_ids_across_pages_are_not_appended(self):
        client = _make_client({
            PAGE_1: Page(photos=[_photo("image#1")], next_url=PAGE_2),
            PAGE_2: Page(photos=[_photo("image#1"), _photo("image#2")], next_url=None),
        })
        store = PhotoStore()
        tracker = CursorTracker(client, store, PAGE_1)
        await tracker.request_next_page()
        await tracker.request_next_page()
        assert [p.id for p in store] == ["image#1", "image#2"]

    @pytest.mark.asyncio
    async def test_results_after_close_are_dropped(self):
        release = asyncio.Event()
        client = MagicMock()

        async def slow_fetch(url):
            await release.wait()
            return Page(photos=[_photo("image#1")], next_url=None)

        client.fetch_page = AsyncMock(side_effect=slow_fetch)
        store = PhotoStore()
        tracker = CursorTracker(client, store, PAGE_1)

        task = asyncio.create_task(tracker.request_next_page())
        await asyncio.sleep(0)
        tracker.close()
        release.set()

        assert await task is False
        assert len(store) == 0
        assert len(tracker.in_flight) == 0

    @pytest.mark.asyncio
    async def test_shared_in_flight_set(self):
        """Two trackers sharing an InFlightSet never fetch the same link together."""
        release = asyncio.Event()
        client = MagicMock()

        async def slow_fetch(url):
            await release.wait()
            return Page(photos=[_photo("image#1")], next_url=None)

        client.fetch_page = AsyncMock(side_effect=slow_fetch)
        shared = InFlightSet()
        a = CursorTracker(client, PhotoStore(), PAGE_1, in_flight=shared)
        b = CursorTracker(client, PhotoStore(), PAGE_1, in_flight=shared)

        task = asyncio.create_task(a.request_next_page())
        await asyncio.sleep(0)
        assert await b.request_next_page() is False
        release.set()
        assert await task is True
        assert client.fetch_page.call_count == 1

    @pytest.mark.asyncio
    async def test_error_cleared_when_new_fetch_starts(self):
        """A fetch in progress supersedes the error of an earlier failed one."""
        release = asyncio.Event()
        client = MagicMock()
        calls = []

        async def fetch(url):
            calls.append(url)
            if len(calls) == 1:
                raise httpx.ConnectError("down")
            await release.wait()
            return Page(photos=[_photo("image#1")], next_url=None)

        client.fetch_page = AsyncMock(side_effect=fetch)
        tracker = CursorTracker(client, PhotoStore(), PAGE_1)

        assert await tracker.request_next_page() is False
        assert tracker.last_error is not None

        task = asyncio.create_task(tracker.request_next_page())
        await asyncio.sleep(0)
        assert tracker.last_error is None
        assert await tracker.request_next_page() is False
        assert tracker.last_error is None
        release.set()
        assert await task is True


class TestMalformedPages:
    """Bodies of the wrong shape are failures, not crashes."""

    def _mock_http_client(self, body):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = body
        mock_response.raise_for_status.return_value = None
        mock_async_client = AsyncMock()
        mock_async_client.request.return_value = mock_response
        mock_async_client.__aenter__ = AsyncMock(return_value=mock_async_client)
        mock_async_client.__aexit__ = AsyncMock(return_value=False)
        return mock_async_client

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"photos": ["image#1"]},
        {"photos": [{"id": "image#1"}], "_links": {"next": PAGE_2}},
    ])
    async def test_malformed_body_keeps_cursor(self, body):
        store = PhotoStore()
        tracker = CursorTracker(GalleryClient(), store, PAGE_1)

        with patch("gallery_client.httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value = self._mock_http_client(body)
            assert await tracker.request_next_page() is False

        assert tracker.next_url == PAGE_1
        assert isinstance(tracker.last_error, GalleryResponseError)
        assert len(store) == 0
        assert PAGE_1 not in tracker.in_flight
