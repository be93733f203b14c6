"""
File storage for provider documents and booking images.

Files live under a single root directory; keys are relative POSIX paths
such as providers/<user>/license/1700000000_license.pdf.
"""
import os
import re
from pathlib import Path

from homecare.config import get_settings
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(name: str) -> str:
    """Replace anything outside [a-zA-Z0-9._-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", os.path.basename(name or "")) or "file"


class LocalStorage:
    """Filesystem-backed object store rooted at a directory."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Storage key escapes root: {key}")
        return path

    def save(self, key: str, data: bytes) -> str:
        path = self._resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return key

    def delete(self, key: str) -> bool:
        path = self._resolve(key)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted {key}")
        return True

    def exists(self, key: str) -> bool:
        return self._resolve(key).exists()


def get_storage() -> LocalStorage:
    """FastAPI dependency returning the configured storage backend."""
    return LocalStorage(get_settings().UPLOAD_DIR)
