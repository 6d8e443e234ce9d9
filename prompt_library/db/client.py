"""Key/value storage client and helper methods.

Every key holds one JSON document, stored as a UTF-8 text file inside the
data directory. Tables are always read and written whole.
"""

from __future__ import annotations

import json
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import structlog

from prompt_library.config import get_settings

logger = structlog.get_logger()

PROMPTS_KEY = "prompt-library.prompts"
RATINGS_KEY = "prompt-library.ratings"
NOTES_KEY = "prompt-notes:v1"
BACKUP_PREFIX = "prompt-library.backup:"

_SUFFIX = ".json"


class StorageClient:
    """File-backed key/value store with JSON convenience methods."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{quote(key, safe='')}{_SUFFIX}"

    # --- Raw text access ---

    def get_item(self, key: str) -> str | None:
        """Return the raw text stored under key, or None when absent."""
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        """Overwrite key with value atomically."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-", suffix=_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix, sorted."""
        if not self.data_dir.exists():
            return []
        found = []
        for path in self.data_dir.glob(f"*{_SUFFIX}"):
            if path.name.startswith(".tmp-"):
                continue
            key = unquote(path.name[: -len(_SUFFIX)])
            if key.startswith(prefix):
                found.append(key)
        return sorted(found)

    # --- JSON access ---

    def get(self, key: str, default: Any = None) -> Any:
        """Parse the JSON document under key.

        Absent and unparsable values both yield the default so a corrupt
        table reads as empty instead of failing.
        """
        try:
            raw = self.get_item(key)
            if not raw:
                return default
            return json.loads(raw)
        except (ValueError, RecursionError):
            # Undecodable bytes and bad JSON both surface as ValueError
            logger.warning("storage.corrupt_value", key=key)
            return default

    def put(self, key: str, value: Any) -> None:
        """Serialise value and replace whatever is stored under key."""
        self.set_item(key, json.dumps(value, ensure_ascii=False))


@lru_cache
def get_storage_client() -> StorageClient:
    """Get cached storage client instance."""
    settings = get_settings()
    client = StorageClient(settings.data_dir)
    logger.info("storage.opened", data_dir=settings.data_dir)
    return client
