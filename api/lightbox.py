"""
Lightbox navigation over the loaded photos.

States are Closed (index None) and Open(index). Moving forward past the last
loaded photo asks the cursor tracker for another page; if nothing new arrives
the lightbox wraps to the first photo, so forward navigation never dead-ends.

    open(i)     Closed  -> Open(i)           0 <= i < len(store)
    close()     Open(_) -> Closed
    previous()  Open(i) -> Open(max(0, i-1))
    next()      Open(i) -> Open(i+1)         loaded, or a new page arrived
                Open(i) -> Open(0)           exhausted or the fetch failed
                Open(j) kept                 open(j) called while waiting
"""

import logging
from enum import Enum
from typing import Optional

from pagination import CursorTracker
from photo_store import PhotoRecord, PhotoStore

logger = logging.getLogger(__name__)


class LightboxClosedError(RuntimeError):
    """Navigation was requested while the lightbox is closed."""


class NavigationResult(str, Enum):
    ADVANCED = "advanced"                        # next photo was already loaded
    LOADED = "loaded"                            # a new page was fetched
    WRAPPED = "wrapped"                          # collection exhausted
    WRAPPED_AFTER_ERROR = "wrapped_after_error"  # page fetch failed
    CLOSED = "closed"                            # closed while waiting for a page
    SUPERSEDED = "superseded"                    # moved elsewhere while waiting


class LightboxNavigator:
    def __init__(self, store: PhotoStore, tracker: CursorTracker):
        self._store = store
        self._tracker = tracker
        self._index: Optional[int] = None

    @property
    def index(self) -> Optional[int]:
        return self._index

    @property
    def is_open(self) -> bool:
        return self._index is not None

    @property
    def current(self) -> Optional[PhotoRecord]:
        if self._index is None:
            return None
        return self._store[self._index]

    def open(self, index: int):
        if not 0 <= index < len(self._store):
            raise IndexError(f"Photo index {index} out of range (0..{len(self._store) - 1})")
        self._index = index

    def close(self):
        self._index = None

    def _require_open(self) -> int:
        if self._index is None:
            raise LightboxClosedError("Lightbox is closed")
        return self._index

    def previous(self) -> int:
        self._index = max(0, self._require_open() - 1)
        return self._index

    async def next(self) -> NavigationResult:
        index = self._require_open()
        if index + 1 < len(self._store):
            self._index = index + 1
            return NavigationResult.ADVANCED

        if not self._tracker.has_more:
            self._index = 0
            return NavigationResult.WRAPPED

        loaded = await self._tracker.request_next_page()
        if self._index is None:
            # Closed while the page was loading.
            return NavigationResult.CLOSED
        if self._index != index:
            return NavigationResult.SUPERSEDED
        if loaded and index + 1 < len(self._store):
            self._index = index + 1
            return NavigationResult.LOADED

        self._index = 0
        if self._tracker.last_error is not None:
            logger.debug(f"Wrapping to start after fetch error: {self._tracker.last_error}")
            return NavigationResult.WRAPPED_AFTER_ERROR
        return NavigationResult.WRAPPED
