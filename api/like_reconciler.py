"""One-time reconciliation of the device's liked photos."""

import asyncio
import logging
from typing import Optional

import httpx

from auth_provider import AuthProvider, NoAuth
from gallery_client import GalleryAuthError, GalleryClient, GalleryResponseError
from photo_store import PhotoStore, qualify_photo_id

logger = logging.getLogger(__name__)


class LikeReconciler:
    """Loads the liked set once and signals when likes are ready.

    A failed fetch still signals ready, with nothing liked. While
    authentication is not ready the run is deferred: reconcile() returns
    False and may be called again later.
    """

    def __init__(self, client: GalleryClient, store: PhotoStore,
                 auth: Optional[AuthProvider] = None):
        self._client = client
        self._store = store
        self._auth = auth or NoAuth()
        self._started = False
        self._closed = False
        self._ready = asyncio.Event()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    async def wait_ready(self):
        await self._ready.wait()

    def close(self):
        self._closed = True

    async def reconcile(self, identity: str) -> bool:
        """Fetch and install the liked set for ``identity``.

        Returns True once likes are ready, False if deferred for
        authentication. Calls after the first run wait for it and do not
        fetch again.
        """
        if self._started:
            await self._ready.wait()
            return True

        if self._client.likes_url is None:
            self._started = True
            self._ready.set()
            return True

        if not self._auth.is_ready():
            logger.info("Deferring like reconciliation until authenticated")
            return False

        self._started = True
        try:
            raw_ids = await self._client.fetch_liked_ids(identity)
        except (httpx.HTTPError, GalleryAuthError, GalleryResponseError) as e:
            logger.warning(f"Could not fetch likes, starting with none: {e}")
            raw_ids = []

        if not self._closed:
            self._store.replace_likes(qualify_photo_id(i) for i in raw_ids)
            logger.info(f"Likes ready: {len(raw_ids)} liked photo(s)")
        self._ready.set()
        return True
