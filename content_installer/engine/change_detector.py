# Path: content_installer/engine/change_detector.py
"""
Change Detector

Decides whether a local source (file or directory) changed since it was
last seen, so unchanged packages can be skipped.

Architecture:
- File signature: size, mtime_ns and (policy permitting) SHA-256
- Directory signature: SHA-256 over sorted 'relative|size|mtime_ns' lines
  of every file beneath it, plus the file count (no content hashing)
- Signatures kept in the shared MetadataStore under 'file://' / 'dir://' keys,
  or one 'dest://' key per install destination naming the source it came from
  (a record taken from another source never counts as unchanged)
- Any error reports changed=True (fail open toward reinstalling)

Checksum modes:
- auto:  size+mtime match -> unchanged; otherwise hash files up to threshold
- force: always hash files
- off:   size+mtime only
"""

import hashlib
import os
from pathlib import Path
from typing import Any, Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.metadata_store import MetadataStore, sha256_file
from content_installer.engine.result import ChangeCheck
from content_installer.constants import (
    CHECKSUM_MODE_AUTO,
    CHECKSUM_MODE_FORCE,
    CHECKSUM_MODE_OFF,
    DEFAULT_CHECKSUM_THRESHOLD_BYTES,
    DEFAULT_DIR_MAX_FILES,
    LOG_PROCESS,
)
from content_installer.engine.constants import (
    FILE_KEY_PREFIX,
    DIR_KEY_PREFIX,
    DEST_KEY_PREFIX,
    SIGNATURE_KIND_FILE,
    SIGNATURE_KIND_DIRECTORY,
)

logger = get_logger(__name__, 'engine')


class ChangeDetector:
    """
    Signature-based change detection for local sources.

    Example:
        detector = ChangeDetector(config)
        check = detector.has_changed(Path('/srv/packages/sys1'))
        if not check.changed and destination.is_dir():
            ...  # skip
    """

    def __init__(self, config: Optional[ConfigLoader] = None, store: Optional[MetadataStore] = None):
        """
        Initialize change detector.

        Args:
            config: Optional ConfigLoader instance
            store: Signature store (created in cache_dir if None)
        """
        self.config = config if config else ConfigLoader()
        self.mode = self.config.get('checksum_mode', CHECKSUM_MODE_AUTO)
        self.threshold = self.config.get('checksum_threshold_bytes', DEFAULT_CHECKSUM_THRESHOLD_BYTES)
        self.max_files = self.config.get('dir_max_files', DEFAULT_DIR_MAX_FILES)
        self.store = store if store else MetadataStore(
            Path(self.config.get('cache_dir')),
            dry_run=self.config.get('dry_run', False)
        )

    def has_changed(self, path: Path, destination: Optional[Path] = None) -> ChangeCheck:
        """
        Compare path against its recorded signature and record the new one.

        Args:
            path: Local file or directory
            destination: Install destination fed from path; when given the
                record is kept per destination and only counts if it was
                taken from this same source

        Returns:
            ChangeCheck (changed=True when unknown, different, or on error)
        """
        path = Path(path)
        try:
            if not path.exists():
                return ChangeCheck(changed=True, reason='missing')
            if path.is_dir():
                return self._check_directory(path, destination)
            return self._check_file(path, destination)
        except Exception as e:
            logger.warning(f"{LOG_PROCESS} Change detection failed for {path}, assuming changed: {e}")
            return ChangeCheck(changed=True, reason=f'error: {e}')

    def forget(self, path: Path, destination: Optional[Path] = None) -> None:
        """Drop any recorded signature for path so the next check reports changed."""
        if destination is not None:
            self.store.delete(DEST_KEY_PREFIX + str(Path(destination).absolute()))
            return
        absolute = str(Path(path).absolute())
        self.store.delete(FILE_KEY_PREFIX + absolute)
        self.store.delete(DIR_KEY_PREFIX + absolute)

    def _previous(self, key: str, source: str) -> dict[str, Any]:
        """Recorded signature under key, or {} when it describes another source."""
        previous = self.store.read(key) or {}
        if previous and previous.get('source') != source:
            logger.debug(f"{LOG_PROCESS} Record for {key} was taken from {previous.get('source')}")
            return {}
        return previous

    @staticmethod
    def _key(prefix: str, path: Path, destination: Optional[Path]) -> str:
        if destination is not None:
            return DEST_KEY_PREFIX + str(Path(destination).absolute())
        return prefix + str(path.absolute())

    # ========================================================================
    # FILES
    # ========================================================================

    def _check_file(self, path: Path, destination: Optional[Path] = None) -> ChangeCheck:
        key = self._key(FILE_KEY_PREFIX, path, destination)
        source = str(path.absolute())
        stat = path.stat()
        previous = self._previous(key, source)

        signature: dict[str, Any] = {
            'kind': SIGNATURE_KIND_FILE,
            'source': source,
            'size': stat.st_size,
            'mtime_ns': stat.st_mtime_ns,
        }

        same_stat = (
            previous.get('kind') == SIGNATURE_KIND_FILE
            and previous.get('size') == stat.st_size
            and previous.get('mtime_ns') == stat.st_mtime_ns
        )

        if self.mode == CHECKSUM_MODE_AUTO and same_stat:
            return ChangeCheck(changed=False, reason='size and mtime match', signature=previous)

        if self.mode == CHECKSUM_MODE_OFF:
            changed = not same_stat
            reason = 'size or mtime differ' if changed else 'size and mtime match'
        elif self.mode == CHECKSUM_MODE_FORCE or stat.st_size <= self.threshold:
            signature['sha256'] = sha256_file(path)
            if previous.get('sha256'):
                changed = previous['sha256'] != signature['sha256']
                reason = 'content hash differs' if changed else 'content hash matches'
            else:
                changed = True
                reason = 'no recorded hash'
        else:
            changed = True
            reason = 'size or mtime differ (too large to hash)'

        if not previous:
            changed, reason = True, 'first seen'

        self.store.write(key, signature)
        logger.debug(f"{LOG_PROCESS} {path.name}: changed={changed} ({reason})")
        return ChangeCheck(changed=changed, reason=reason, signature=signature)

    # ========================================================================
    # DIRECTORIES
    # ========================================================================

    def _check_directory(self, path: Path, destination: Optional[Path] = None) -> ChangeCheck:
        key = self._key(DIR_KEY_PREFIX, path, destination)
        source = str(path.absolute())

        lines = []
        for root, dirs, files in os.walk(path):
            dirs.sort()
            for name in files:
                if len(lines) >= self.max_files:
                    self.store.delete(key)
                    return ChangeCheck(changed=True, reason=f'more than {self.max_files} files')
                file_path = Path(root) / name
                stat = file_path.stat()
                relative = file_path.relative_to(path).as_posix()
                lines.append(f"{relative}|{stat.st_size}|{stat.st_mtime_ns}")

        lines.sort()
        aggregate = hashlib.sha256('\n'.join(lines).encode('utf-8')).hexdigest()
        signature = {
            'kind': SIGNATURE_KIND_DIRECTORY,
            'source': source,
            'aggregate': aggregate,
            'file_count': len(lines),
        }

        previous = self._previous(key, source)
        changed = previous.get('kind') != SIGNATURE_KIND_DIRECTORY or previous.get('aggregate') != aggregate

        if changed:
            self.store.write(key, signature)

        logger.debug(f"{LOG_PROCESS} {path.name}/: changed={changed} ({len(lines)} files)")
        return ChangeCheck(
            changed=changed,
            reason='directory signature differs' if changed else 'directory signature matches',
            signature=signature
        )


__all__ = ['ChangeDetector']
