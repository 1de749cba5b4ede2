# Path: content_installer/core/metadata_store.py
"""
Metadata Store

Small JSON sidecar records kept inside the cache directory.
Shared by the fetch cache (one record per URL) and the change detector
(one record per local source path).

Architecture:
- Key hashed with SHA-1 -> '<hash>.meta.json'
- Writes go to a '.part' sibling then rename into place
- Unreadable records are treated as absent
"""

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Optional

from content_installer.core.logger import get_logger

logger = get_logger(__name__, 'core')

META_SUFFIX = '.meta.json'
PART_SUFFIX = '.part'


def key_hash(key: str) -> str:
    """Stable filename-safe hash for a cache key."""
    return hashlib.sha1(key.encode('utf-8')).hexdigest()


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """
    Compute SHA-256 of a file without loading it whole.

    Args:
        path: File to hash
        chunk_size: Read size in bytes

    Returns:
        Hex digest
    """
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


class MetadataStore:
    """
    Keyed JSON records on disk.

    Example:
        store = MetadataStore(Path('/data/container_cache/components'))
        store.write('https://example.com/pkg.zip', {'etag': '"abc"'})
        meta = store.read('https://example.com/pkg.zip')
    """

    def __init__(self, directory: Path, dry_run: bool = False):
        """
        Initialize metadata store.

        Args:
            directory: Directory holding the records
            dry_run: When True, writes and deletes are logged only
        """
        self.directory = Path(directory)
        self.dry_run = dry_run

    def path_for(self, key: str) -> Path:
        """Record path for a key."""
        return self.directory / f"{key_hash(key)}{META_SUFFIX}"

    def read(self, key: str) -> Optional[dict[str, Any]]:
        """
        Read record for key.

        Returns:
            Record dictionary, or None when absent or unreadable
        """
        meta_path = self.path_for(key)
        if not meta_path.exists():
            return None

        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug(f"Ignoring unreadable metadata {meta_path.name}: {e}")
            return None

        return data if isinstance(data, dict) else None

    def write(self, key: str, record: dict[str, Any]) -> None:
        """
        Write record for key atomically.

        Args:
            key: Record key
            record: JSON-serializable dictionary
        """
        if self.dry_run:
            logger.debug(f"(dry-run) Would write metadata for {key}")
            return

        self.directory.mkdir(parents=True, exist_ok=True)
        meta_path = self.path_for(key)
        tmp_path = meta_path.with_name(meta_path.name + PART_SUFFIX)

        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(record, f, indent=2, sort_keys=True)
        os.replace(tmp_path, meta_path)

    def delete(self, key: str) -> None:
        """Remove record for key if present."""
        if self.dry_run:
            return
        meta_path = self.path_for(key)
        if meta_path.exists():
            meta_path.unlink()


__all__ = ['MetadataStore', 'key_hash', 'sha256_file']
