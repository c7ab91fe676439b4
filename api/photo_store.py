"""Photo collection store.

Ordered, append-only sequence of the photo records seen so far, together
with the per-device liked set. Two writers share it:

- the cursor tracker appends pages (append)
- the like mutator flips liked flags and counts (set_like_state /
  revert_like_flip)

The like reconciler performs the one wholesale replacement of the liked set
(replace_likes). Nothing else writes.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

KIND_SEPARATOR = "#"
DEFAULT_KIND = "image"


@dataclass
class PhotoRecord:
    """A single gallery item. Only ``likes`` changes after creation."""
    id: str
    thumbnail: Optional[str]
    web: Optional[str]
    likes: int = 0

    @property
    def kind(self) -> str:
        """Kind prefix of the id (``image``, ``video``, ...)."""
        if KIND_SEPARATOR not in self.id:
            return DEFAULT_KIND
        return self.id.split(KIND_SEPARATOR, 1)[0]

    @property
    def suffix(self) -> str:
        """Instance part of the id, as used by the likes endpoints."""
        return photo_suffix(self.id)

    @property
    def is_video(self) -> bool:
        return self.kind == "video"

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoRecord":
        """Parse one entry of a page response.

        Raises:
            ValueError: If the entry has no id.
        """
        photo_id = data.get("id")
        if not photo_id:
            raise ValueError(f"Photo entry without id: {data!r}")
        likes = int(data.get("likes") or 0)
        return cls(
            id=str(photo_id),
            thumbnail=data.get("thumbnail"),
            web=data.get("web"),
            likes=max(0, likes),
        )


def photo_suffix(photo_id: str) -> str:
    """'image#42' -> '42'. Ids without a kind prefix are returned unchanged."""
    if KIND_SEPARATOR not in photo_id:
        return photo_id
    return photo_id.split(KIND_SEPARATOR, 1)[1]


def qualify_photo_id(raw_id: str, kind: str = DEFAULT_KIND) -> str:
    """'42' -> 'image#42'. Already prefixed ids are kept as they are."""
    raw_id = str(raw_id)
    if KIND_SEPARATOR in raw_id:
        return raw_id
    return f"{kind}{KIND_SEPARATOR}{raw_id}"


class PhotoStore:
    """Ordered photo records plus the liked set of the current identity."""

    def __init__(self):
        self._records: list[PhotoRecord] = []
        self._index: dict[str, int] = {}
        self._liked: set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> PhotoRecord:
        return self._records[index]

    def __iter__(self) -> Iterator[PhotoRecord]:
        return iter(self._records)

    def __contains__(self, photo_id: str) -> bool:
        return photo_id in self._index

    def snapshot(self) -> list[PhotoRecord]:
        return list(self._records)

    def get(self, photo_id: str) -> Optional[PhotoRecord]:
        index = self._index.get(photo_id)
        return None if index is None else self._records[index]

    def index_of(self, photo_id: str) -> Optional[int]:
        return self._index.get(photo_id)

    def append(self, records: Iterable[PhotoRecord]) -> int:
        """Append records in the given order. Returns how many were added.

        A record whose id is already stored is skipped; the stored one wins.
        """
        added = 0
        for record in records:
            if record.id in self._index:
                logger.warning(f"Skipping duplicate photo {record.id}")
                continue
            self._index[record.id] = len(self._records)
            self._records.append(record)
            added += 1
        return added

    # -- likes --

    @property
    def liked_ids(self) -> frozenset[str]:
        return frozenset(self._liked)

    def is_liked(self, photo_id: str) -> bool:
        return photo_id in self._liked

    def replace_likes(self, photo_ids: Iterable[str]):
        """Install the reconciled liked set. Counts are left as the server sent them."""
        self._liked = set(photo_ids)

    def set_like_state(self, photo_id: str, liked: bool) -> int:
        """Set the liked flag and move the count with it.

        Returns the delta applied to ``likes``: +1, -1, or 0 when the flag
        already had that value or the count was already 0 on an unlike.

        Raises:
            KeyError: If the photo is not in the store.
        """
        record = self._require(photo_id)
        if self.is_liked(photo_id) == liked:
            return 0

        if liked:
            self._liked.add(photo_id)
            delta = 1
        else:
            self._liked.discard(photo_id)
            delta = -1 if record.likes > 0 else 0
        record.likes += delta
        return delta

    def revert_like_flip(self, photo_id: str, delta: int):
        """Undo one flip made by set_like_state() that returned ``delta``.

        The flag is flipped back relative to its current value and ``delta``
        is subtracted, so reverts of overlapping flips on one photo compose.
        """
        record = self._require(photo_id)
        if photo_id in self._liked:
            self._liked.discard(photo_id)
        else:
            self._liked.add(photo_id)
        record.likes = max(0, record.likes - delta)

    def clear(self):
        self._records.clear()
        self._index.clear()
        self._liked.clear()

    def _require(self, photo_id: str) -> PhotoRecord:
        record = self.get(photo_id)
        if record is None:
            raise KeyError(f"Unknown photo: {photo_id}")
        return record
