"""Configuration for the gallery feed client."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_REQUEST_TIMEOUT = 30.0


def _url_from_env(name: str) -> Optional[str]:
    value = os.environ.get(name, "").strip().rstrip("/")
    return value or None


@dataclass
class GalleryConfig:
    """Endpoints and local state for one gallery instance."""
    initial_url: Optional[str]
    likes_url: Optional[str] = None
    access_token: Optional[str] = None
    data_dir: Path = Path("./data")
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")

    @property
    def identity_path(self) -> Path:
        """File holding the persisted per-device identity."""
        return self.data_dir / "device_id"

    @property
    def auth_configured(self) -> bool:
        return bool(self.access_token)

    @classmethod
    def from_env(cls) -> "GalleryConfig":
        # The bootstrap URL only stands in for the collection URL when no
        # explicit one is given.
        initial_url = _url_from_env("GALLERY_URL") or _url_from_env("GALLERY_BOOTSTRAP_URL")
        return cls(
            initial_url=initial_url,
            likes_url=_url_from_env("GALLERY_LIKES_URL"),
            access_token=os.environ.get("GALLERY_ACCESS_TOKEN") or None,
            data_dir=Path(os.environ.get("GALLERY_DATA_DIR", "./data")),
            request_timeout=float(
                os.environ.get("GALLERY_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
            ),
        )
