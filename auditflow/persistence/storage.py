"""
Artifact Storage

Backends for rendered artifacts (PDF reports). Keys are relative paths such
as "reports/<id>.pdf"; a backend turns a key into a public URL.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract base class for artifact storage backends."""

    @abstractmethod
    async def save_bytes(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Save binary data. Returns the storage key."""
        pass

    @abstractmethod
    async def load_bytes(self, key: str) -> Optional[bytes]:
        """None when nothing is stored under `key`."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Public URL of a stored artifact."""
        pass


class FileStorage(StorageBackend):
    """
    Artifacts on the local filesystem.

    Artifacts are written under `base_path` and served by the API's static
    files mount at `public_base_url`.
    """

    def __init__(
        self,
        base_path: Optional[str] = None,
        public_base_url: str = "http://localhost:8000/files",
    ):
        """
        Args:
            base_path: Root directory for storage.
                      Defaults to ~/.auditflow/storage/
            public_base_url: URL prefix artifacts are served under
        """
        if base_path is None:
            base_path = os.getenv(
                "STORAGE_PATH",
                str(Path.home() / ".auditflow" / "storage")
            )

        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

        logger.info(f"FileStorage initialized at {self.base_path}")

    def _get_path(self, key: str) -> Path:
        safe_key = key.replace("..", "").lstrip("/")
        return self.base_path / safe_key

    async def save_bytes(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write then rename so readers never see a partial file
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)

        logger.debug(f"Saved {content_type} to {path} ({len(data)} bytes)")
        return str(path.relative_to(self.base_path))

    async def load_bytes(self, key: str) -> Optional[bytes]:
        path = self._get_path(key)
        if not path.exists():
            return None
        with open(path, "rb") as f:
            return f.read()

    async def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    async def delete(self, key: str) -> bool:
        path = self._get_path(key)
        if path.exists():
            path.unlink()
            logger.debug(f"Deleted {path}")
            return True
        return False

    def get_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"


def create_storage(settings) -> StorageBackend:
    """Storage backend configured from application settings."""
    return FileStorage(
        base_path=settings.STORAGE_PATH,
        public_base_url=settings.PUBLIC_BASE_URL,
    )
