"""
Gallery HTTP Client

Client for the three gallery endpoints:

    GET  <cursor-url>                                  -> one page of photos
    GET  <likes-url>/<identity>                        -> ids liked by identity
    POST <likes-url>/<identity>/<suffix>?hasLiked=...  -> toggle one like

Pages are link-followed: each response carries the URL of the next page in
``_links.next.href`` and omits it on the last page.

Every request carries the bearer token of the configured AuthProvider. The
client does not decide whether a request may be made; callers check
``auth.is_ready()`` first.
"""

import httpx
import logging
from dataclasses import dataclass, field
from typing import Optional

from auth_provider import AuthProvider, NoAuth, auth_headers
from config import DEFAULT_REQUEST_TIMEOUT
from photo_store import PhotoRecord, photo_suffix

logger = logging.getLogger(__name__)


class GalleryAuthError(RuntimeError):
    """The server rejected the request with 401."""


class GalleryResponseError(RuntimeError):
    """The server answered with a body that is not the expected shape."""


@dataclass
class Page:
    """One page of the collection."""
    photos: list[PhotoRecord] = field(default_factory=list)
    next_url: Optional[str] = None


class GalleryClient:
    """
    Async client for the gallery and likes endpoints.
    """

    def __init__(
        self,
        likes_url: Optional[str] = None,
        auth: Optional[AuthProvider] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize the gallery client.

        Args:
            likes_url: Base URL of the likes API. None disables like requests.
            auth: Provider for the bearer token. Defaults to NoAuth.
            timeout: Per-request timeout in seconds.
        """
        self.likes_url = likes_url.rstrip("/") if likes_url else None
        self.auth = auth or NoAuth()
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        headers.update(auth_headers(self.auth))
        return headers

    async def _request(self, method: str, url: str, params: dict | None = None) -> httpx.Response:
        """
        Send one request.

        Raises:
            GalleryAuthError: On a 401 response.
            httpx.HTTPStatusError: On any other non-2xx response.
            httpx.RequestError: On transport failures and timeouts.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                method,
                url,
                params=params,
                headers=self.headers,
            )
            if response.status_code == 401:
                raise GalleryAuthError(f"{method} {url} rejected: unauthenticated")
            response.raise_for_status()
            return response

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise GalleryResponseError(f"Response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise GalleryResponseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    async def fetch_page(self, url: str) -> Page:
        """
        Fetch one page of the collection.

        Returns:
            Page with the photos in server order and the next page URL,
            None when this is the last page.
        """
        logger.debug(f"Fetching page {url}")
        data = self._json(await self._request("GET", url))

        raw_photos = data.get("photos") or []
        if not isinstance(raw_photos, list):
            raise GalleryResponseError("'photos' is not a list")
        photos = []
        for entry in raw_photos:
            if not isinstance(entry, dict):
                raise GalleryResponseError(f"Malformed photo entry: {entry!r}")
            try:
                photos.append(PhotoRecord.from_dict(entry))
            except (TypeError, ValueError) as e:
                raise GalleryResponseError(f"Malformed photo entry: {e}") from e

        return Page(photos=photos, next_url=self._next_href(data))

    @staticmethod
    def _next_href(data: dict) -> Optional[str]:
        links = data.get("_links") or {}
        if not isinstance(links, dict):
            raise GalleryResponseError("'_links' is not an object")
        next_link = links.get("next") or {}
        if not isinstance(next_link, dict):
            raise GalleryResponseError("'_links.next' is not an object")
        href = next_link.get("href")
        if href is not None and not isinstance(href, str):
            raise GalleryResponseError("'_links.next.href' is not a string")
        return href or None

    def _require_likes_url(self) -> str:
        if not self.likes_url:
            raise RuntimeError("No likes URL configured")
        return self.likes_url

    async def fetch_liked_ids(self, identity: str) -> list[str]:
        """
        Fetch the ids liked by ``identity``.

        The server returns ids without their kind prefix ("42", not "image#42").
        """
        url = f"{self._require_likes_url()}/{identity}"
        data = self._json(await self._request("GET", url))
        photos = data.get("photos") or []
        if not isinstance(photos, list):
            raise GalleryResponseError("'photos' is not a list")
        return [str(p) for p in photos]

    async def set_like(self, identity: str, photo_id: str, has_liked: bool) -> None:
        """
        Record the desired like state of ``photo_id`` for ``identity``.
        """
        url = f"{self._require_likes_url()}/{identity}/{photo_suffix(photo_id)}"
        await self._request(
            "POST",
            url,
            params={"hasLiked": "true" if has_liked else "false"},
        )
