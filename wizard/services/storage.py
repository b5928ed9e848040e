"""Blob storage for uploads and generated snapshots."""

import json
import logging
import os
import re
from typing import Any

from wizard.config import settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Strip directories and unsafe characters from an uploaded filename."""
    base = os.path.basename(filename or "").strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    if not cleaned:
        raise ValueError("Filename is empty")
    return cleaned


class BlobStorage:
    """Files addressed by '{project_id}/{filename}' under a root directory."""

    def __init__(self, root: str = None):
        """Initialize storage rooted at settings.STORAGE_ROOT by default."""
        self.root = root or settings.STORAGE_ROOT

    def object_path(self, project_id, filename: str) -> str:
        """Storage key for a project file."""
        return f"{project_id}/{safe_filename(filename)}"

    def _full_path(self, key: str) -> str:
        return os.path.join(self.root, *key.split("/"))

    def save(self, project_id, filename: str, data: bytes) -> str:
        """Write bytes and return the storage key."""
        key = self.object_path(project_id, filename)
        full_path = self._full_path(key)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return key

    def save_json(self, project_id, filename: str, payload: Any) -> str:
        """Serialize payload as JSON and store it."""
        data = json.dumps(payload, indent=2, sort_keys=True, default=str).encode("utf-8")
        return self.save(project_id, filename, data)

    def read(self, key: str) -> bytes:
        """Read a stored object. Raises FileNotFoundError if missing."""
        with open(self._full_path(key), "rb") as f:
            return f.read()
