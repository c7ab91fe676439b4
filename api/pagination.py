"""
Cursor tracking for the link-paginated photo collection.

The tracker owns the URL of the next page and the set of page URLs currently
being fetched. A page URL is claimed before its request is sent and released
when the request finishes, so concurrent callers (infinite scroll and the
lightbox asking at the same time) never fetch the same page twice.

Usage:
    tracker = CursorTracker(client, store, initial_url)
    while tracker.has_more:
        if not await tracker.request_next_page():
            break
"""

import logging
from typing import Optional

import httpx

from auth_provider import AuthProvider, NoAuth
from gallery_client import GalleryAuthError, GalleryClient, GalleryResponseError
from photo_store import PhotoStore

logger = logging.getLogger(__name__)


class InFlightSet:
    """Page URLs with an outstanding request.

    claim() checks and marks in one step with no suspension point, which is
    all the exclusion a single event loop needs.
    """

    def __init__(self):
        self._links: set[str] = set()

    def __contains__(self, link: str) -> bool:
        return link in self._links

    def __len__(self) -> int:
        return len(self._links)

    def claim(self, link: str) -> bool:
        """Mark ``link`` as in flight. False if it already was."""
        if link in self._links:
            return False
        self._links.add(link)
        return True

    def release(self, link: str):
        self._links.discard(link)


class CursorTracker:
    """Follows ``_links.next`` through the collection, appending to the store."""

    def __init__(
        self,
        client: GalleryClient,
        store: PhotoStore,
        initial_url: Optional[str],
        auth: Optional[AuthProvider] = None,
        in_flight: Optional[InFlightSet] = None,
    ):
        self._client = client
        self._store = store
        self._auth = auth or NoAuth()
        self._in_flight = in_flight if in_flight is not None else InFlightSet()
        self._next_url: Optional[str] = initial_url or None
        self._closed = False
        self.last_error: Optional[Exception] = None

    @property
    def next_url(self) -> Optional[str]:
        return self._next_url

    @property
    def has_more(self) -> bool:
        return self._next_url is not None

    @property
    def in_flight(self) -> InFlightSet:
        return self._in_flight

    @property
    def loading(self) -> bool:
        return self._next_url is not None and self._next_url in self._in_flight

    def reset(self, initial_url: Optional[str]):
        """Point the cursor at a new collection start. Late results for old links are dropped."""
        self._next_url = initial_url or None
        self.last_error = None

    def close(self):
        """Stop consuming results. Requests already sent are not cancelled."""
        self._closed = True

    async def request_next_page(self) -> bool:
        """
        Fetch the page behind the current cursor and append it to the store.

        No-op returning False when the collection is exhausted, the page is
        already being fetched, authentication is not ready, or the tracker
        was closed.

        Returns:
            True if at least one new record was appended. On failure the
            cursor is left where it was so a later call retries the same page;
            the exception is kept in ``last_error``.
        """
        link = self._next_url
        if link is None or self._closed:
            return False
        if not self._auth.is_ready():
            logger.debug("Authentication not ready, not fetching")
            return False
        if not self._in_flight.claim(link):
            logger.debug(f"Page already in flight: {link}")
            return False

        self.last_error = None
        try:
            page = await self._client.fetch_page(link)
        except GalleryAuthError as e:
            logger.warning(f"Page fetch unauthorized, keeping cursor: {e}")
            self.last_error = e
            return False
        except (httpx.HTTPError, GalleryResponseError) as e:
            logger.warning(f"Page fetch failed for {link}: {e}")
            self.last_error = e
            return False
        finally:
            self._in_flight.release(link)

        if self._closed or self._next_url != link:
            logger.debug(f"Discarding stale page {link}")
            return False

        added = self._store.append(page.photos)
        self._next_url = page.next_url
        logger.info(
            f"Loaded {added} photo(s), {len(self._store)} total"
            + ("" if page.next_url else ", end of collection")
        )
        return added > 0
