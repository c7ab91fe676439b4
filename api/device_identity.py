"""Per-device identity.

The gallery keys likes by an opaque device identifier rather than a user
account. The identifier is a UUID4, generated the first time it is needed and
persisted to a file so it survives restarts.

Usage:
    identity = DeviceIdentity(config.identity_path)
    user_id = identity.get()
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class DeviceIdentity:
    """Lazily created, persisted per-device identifier."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._value: Optional[str] = None

    def get(self) -> str:
        """Return the identity, creating and persisting it on first use."""
        if self._value is not None:
            return self._value

        if self.path.exists():
            stored = self.path.read_text(encoding="utf-8").strip()
            if stored:
                self._value = stored
                return self._value
            logger.warning(f"Identity file {self.path} is empty, generating a new identity")

        value = str(uuid.uuid4())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(value, encoding="utf-8")
        logger.info(f"Created device identity in {self.path}")
        self._value = value
        return value
