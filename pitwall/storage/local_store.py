"""
Directory-backed key/value storage for persisted JSON blobs.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

class LocalStorage:
    """Stores one text blob per key, each in its own file."""

    SUFFIX = ".json"

    def __init__(self, storage_dir: str = "data/active"):
        """Initialize storage.

        Args:
            storage_dir: Directory holding one file per key. Created if missing.
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Return the file backing ``key``."""
        return self.storage_dir / (quote(key, safe="@.-_+") + self.SUFFIX)

    def get_item(self, key: str) -> Optional[str]:
        """Read the blob stored under ``key``, or None if absent."""
        path = self.path_for(key)
        if not path.exists():
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def set_item(self, key: str, value: str):
        """Store ``value`` under ``key``.

        The blob is written to a temporary file and renamed into place, so a
        reader never sees a partial write.
        """
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.storage_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(value), path.name)

    def remove_item(self, key: str):
        """Delete ``key`` if present."""
        self.path_for(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        """List stored keys."""
        return sorted(
            unquote(p.name[:-len(self.SUFFIX)])
            for p in self.storage_dir.iterdir()
            if p.is_file() and p.name.endswith(self.SUFFIX)
        )
