"""
Optimistic like toggling.

A toggle is applied to the store immediately and then sent to the server.
If the request fails the local change is rolled back exactly, count and flag
both, using the delta recorded when it was applied.

    txn = LikeTransaction(store, "image#42", liked=False)
    txn.apply()
    try:
        await client.set_like(...)
    except ...:
        txn.rollback()
    else:
        txn.commit()
"""

import logging
from enum import Enum
from typing import Optional

import httpx

from auth_provider import AuthProvider, NoAuth
from device_identity import DeviceIdentity
from gallery_client import GalleryAuthError, GalleryClient, GalleryResponseError
from photo_store import PhotoStore

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    PENDING = "pending"
    APPLIED = "applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class LikeTransaction:
    """Two-phase local like change: apply(), then commit() or rollback()."""

    def __init__(self, store: PhotoStore, photo_id: str, liked: bool):
        self.store = store
        self.photo_id = photo_id
        self.liked = liked
        self.state = TransactionState.PENDING
        self._flipped = False
        self._delta = 0

    @property
    def delta(self) -> int:
        return self._delta

    def apply(self) -> int:
        if self.state is not TransactionState.PENDING:
            raise RuntimeError(f"Cannot apply a {self.state.value} transaction")
        self._flipped = self.store.is_liked(self.photo_id) != self.liked
        self._delta = self.store.set_like_state(self.photo_id, self.liked)
        self.state = TransactionState.APPLIED
        return self._delta

    def commit(self):
        if self.state is not TransactionState.APPLIED:
            raise RuntimeError(f"Cannot commit a {self.state.value} transaction")
        self.state = TransactionState.COMMITTED

    def rollback(self):
        if self.state is not TransactionState.APPLIED:
            raise RuntimeError(f"Cannot roll back a {self.state.value} transaction")
        if self._flipped:
            self.store.revert_like_flip(self.photo_id, self._delta)
        self.state = TransactionState.ROLLED_BACK


class LikeMutator:
    """Toggles likes optimistically and reverts them when the server refuses."""

    def __init__(
        self,
        client: GalleryClient,
        store: PhotoStore,
        identity: DeviceIdentity,
        auth: Optional[AuthProvider] = None,
    ):
        self._client = client
        self._store = store
        self._identity = identity
        self._auth = auth or NoAuth()

    async def toggle_like(self, photo_id: str) -> bool:
        """
        Flip the like state of ``photo_id``.

        Returns:
            True if the change stuck, False if it was refused (authentication
            not ready) or rolled back after a failed request.

        Raises:
            KeyError: If the photo is not in the store.
        """
        if photo_id not in self._store:
            raise KeyError(f"Unknown photo: {photo_id}")
        if not self._auth.is_ready():
            logger.info(f"Not toggling {photo_id}: authentication not ready")
            return False

        has_liked = not self._store.is_liked(photo_id)
        txn = LikeTransaction(self._store, photo_id, has_liked)
        txn.apply()

        if self._client.likes_url is None:
            # Without a likes endpoint the change stays local.
            txn.commit()
            return True

        try:
            await self._client.set_like(self._identity.get(), photo_id, has_liked)
        except (httpx.HTTPError, GalleryAuthError, GalleryResponseError) as e:
            logger.error(f"Error updating like for {photo_id}, reverting: {e}")
            txn.rollback()
            return False

        txn.commit()
        return True
