"""
Photo gallery view model.

Wires the store, cursor tracker, like reconciler, like mutator and lightbox
for one gallery and enforces the ordering between them: automatic page
loading waits for likes to be ready, so photos never show as unliked first
and liked a moment later.

Usage:
    gallery = PhotoGallery.from_config(GalleryConfig.from_env())
    await gallery.start()
    while gallery.has_more:
        await gallery.load_more()
    await gallery.toggle_like("image#42")
    gallery.lightbox.open(0)
    await gallery.lightbox.next()
    gallery.close()
"""

import asyncio
import logging
from typing import Optional

from auth_provider import AuthProvider, BearerTokenAuth, NoAuth
from config import GalleryConfig
from device_identity import DeviceIdentity
from gallery_client import GalleryClient
from like_mutator import LikeMutator
from like_reconciler import LikeReconciler
from lightbox import LightboxNavigator
from pagination import CursorTracker
from photo_store import PhotoRecord, PhotoStore

logger = logging.getLogger(__name__)


class PhotoGallery:
    """One gallery instance: paginated photos, likes and a lightbox."""

    def __init__(
        self,
        client: GalleryClient,
        identity: DeviceIdentity,
        initial_url: Optional[str],
        auth: Optional[AuthProvider] = None,
    ):
        self.auth = auth or NoAuth()
        self.identity = identity
        self.store = PhotoStore()
        self.tracker = CursorTracker(client, self.store, initial_url, auth=self.auth)
        self.reconciler = LikeReconciler(client, self.store, auth=self.auth)
        self.mutator = LikeMutator(client, self.store, identity, auth=self.auth)
        self.lightbox = LightboxNavigator(self.store, self.tracker)
        self._closed = False
        self._pending: set[asyncio.Task] = set()

        if isinstance(self.auth, BearerTokenAuth):
            self.auth.on_ready(self.on_auth_ready)

    @classmethod
    def from_config(cls, config: GalleryConfig, auth: Optional[AuthProvider] = None) -> "PhotoGallery":
        if auth is None:
            auth = BearerTokenAuth(config.access_token) if config.auth_configured else NoAuth()
        client = GalleryClient(
            likes_url=config.likes_url,
            auth=auth,
            timeout=config.request_timeout,
        )
        return cls(
            client=client,
            identity=DeviceIdentity(config.identity_path),
            initial_url=config.initial_url,
            auth=auth,
        )

    @property
    def photos(self) -> list[PhotoRecord]:
        return self.store.snapshot()

    @property
    def has_more(self) -> bool:
        return not self._closed and self.tracker.has_more

    @property
    def likes_ready(self) -> bool:
        return self.reconciler.ready

    def is_liked(self, photo_id: str) -> bool:
        return self.store.is_liked(photo_id)

    async def start(self) -> bool:
        """Reconcile likes. False if deferred until authentication is ready."""
        if self._closed:
            return False
        return await self.reconciler.reconcile(self.identity.get())

    def on_auth_ready(self):
        """Resume work that was deferred for authentication."""
        if self._closed or self.reconciler.ready:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Authentication ready outside an event loop; call start() to reconcile")
            return
        task = loop.create_task(self.start())
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Deferred like reconciliation failed: {error!r}")

    async def load_more(self) -> bool:
        """Load the next page once likes are ready. True if photos were added."""
        if self._closed:
            return False
        if not self.reconciler.ready:
            if not await self.start():
                return False
        return await self.tracker.request_next_page()

    async def toggle_like(self, photo_id: str) -> bool:
        if self._closed:
            return False
        return await self.mutator.toggle_like(photo_id)

    def close(self):
        """Tear down: close the lightbox and drop all loaded state."""
        self._closed = True
        self.lightbox.close()
        self.tracker.close()
        self.reconciler.close()
        self.store.clear()
        logger.info("Gallery closed")
