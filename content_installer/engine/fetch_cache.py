# Path: content_installer/engine/fetch_cache.py
"""
Fetch Cache

URL-keyed on-disk cache for remote packages and manifests.
Revalidates with conditional requests instead of re-downloading.

Architecture:
- Body stored as '<sha1(url)>.bin', record as '<sha1(url)>.meta.json'
- Validators (ETag / Last-Modified) sent only when a cached body exists
- 304 reuses the cached body without rewriting it
- 200 streams to '.bin.part', then renames into place and updates the record
- Retries through RetryManager; exhausted retries become a failed FetchResult
- Local write failures also become a failed FetchResult; '.part' discarded
- Cache-bust mode never sends validators but still updates the cache
- Dry-run: cached body reused without network; otherwise body drained, nothing written
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import FetchError
from content_installer.core.metadata_store import MetadataStore, key_hash
from content_installer.engine.protocol_handlers import HTTPHandler
from content_installer.engine.retry_manager import RetryManager
from content_installer.engine.result import FetchResult
from content_installer.constants import (
    CACHE_MODE_BUST,
    CACHE_MODE_REVALIDATE,
    HTTP_NOT_MODIFIED,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
    DRY_RUN_MARKER,
)
from content_installer.engine.constants import (
    CACHE_BODY_SUFFIX,
    CACHE_PART_SUFFIX,
    HEADER_IF_NONE_MATCH,
    HEADER_IF_MODIFIED_SINCE,
    META_URL,
    META_ETAG,
    META_LAST_MODIFIED,
    META_LOCAL_PATH,
    META_SIZE_BYTES,
    META_SHA256,
    META_FETCHED_AT,
    META_VALIDATED_AT,
)

logger = get_logger(__name__, 'engine')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FetchCache:
    """
    Fetches URLs through the on-disk cache.

    Example:
        cache = FetchCache(config)
        result = await cache.fetch('https://example.com/pkg.tar.gz')
        if result.success:
            print(result.path, result.from_cache)
        await cache.close()
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        http_handler: Optional[HTTPHandler] = None,
        retry_manager: Optional[RetryManager] = None,
        metadata_store: Optional[MetadataStore] = None
    ):
        """
        Initialize fetch cache.

        Args:
            config: Optional ConfigLoader instance
            http_handler: HTTP handler (created from config if None)
            retry_manager: Retry policy (created from config if None)
            metadata_store: Record store (created in cache_dir if None)
        """
        self.config = config if config else ConfigLoader()

        self.cache_dir = Path(self.config.get('cache_dir'))
        self.cache_mode = self.config.get('cache_mode', CACHE_MODE_REVALIDATE)
        self.dry_run = self.config.get('dry_run', False)

        self.http_handler = http_handler if http_handler else HTTPHandler(self.config)
        self.retry_manager = retry_manager if retry_manager else RetryManager(config=self.config)
        self.metadata = metadata_store if metadata_store else \
            MetadataStore(self.cache_dir, dry_run=self.dry_run)

    def body_path_for(self, url: str) -> Path:
        """Deterministic cached body path for a URL."""
        return self.cache_dir / f"{key_hash(url)}{CACHE_BODY_SUFFIX}"

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch URL, revalidating any cached copy.

        Args:
            url: Remote URL

        Returns:
            FetchResult; success=False once retries are exhausted or on a
            non-retryable HTTP error
        """
        logger.info(f"{LOG_INPUT} Fetch {url} (mode={self.cache_mode})")

        body_path = self.body_path_for(url)
        has_body = body_path.is_file()
        meta = self.metadata.read(url) or {}

        if self.dry_run and has_body:
            logger.info(f"{LOG_OUTPUT} {DRY_RUN_MARKER} Using cached body for {url}")
            return FetchResult(
                success=True,
                url=url,
                path=body_path,
                from_cache=True,
                etag=meta.get(META_ETAG),
                last_modified=meta.get(META_LAST_MODIFIED),
                size_bytes=body_path.stat().st_size,
            )

        headers = self._validator_headers(meta) if has_body else {}
        part_path = None if self.dry_run else body_path.with_name(body_path.name + CACHE_PART_SUFFIX)

        try:
            response = await self._get(url, part_path, headers)
            attempts = self.retry_manager.last_attempts

            if response.status_code == HTTP_NOT_MODIFIED and not body_path.is_file():
                logger.warning(f"{LOG_PROCESS} 304 but cached body missing, refetching {url}")
                response = await self._get(url, part_path, {})
                attempts += self.retry_manager.last_attempts

            if response.status_code == HTTP_NOT_MODIFIED:
                return self._revalidated(url, body_path, meta, response, attempts)

            if part_path is None:
                logger.info(f"{LOG_OUTPUT} {DRY_RUN_MARKER} Would cache {response.size_bytes} bytes for {url}")
                response.attempts = attempts
                return response

            return self._store(url, body_path, part_path, response, attempts)

        except FetchError as e:
            self._discard(part_path)
            logger.warning(f"{LOG_OUTPUT} Fetch failed for {url}: {e}")
            return FetchResult(
                success=False,
                url=url,
                status_code=e.status_code,
                attempts=self.retry_manager.last_attempts,
                error_message=str(e),
            )

        except OSError as e:
            self._discard(part_path)
            logger.warning(f"{LOG_OUTPUT} Cannot write cache for {url}: {e}")
            return FetchResult(
                success=False,
                url=url,
                attempts=self.retry_manager.last_attempts,
                error_message=f"Cannot write cache for {url}: {e}",
            )

    async def _get(self, url: str, part_path: Optional[Path], headers: dict) -> FetchResult:
        return await self.retry_manager.retry_async(
            self.http_handler.get, url, part_path, headers
        )

    def _validator_headers(self, meta: dict) -> dict[str, str]:
        """
        Conditional request headers from a cache record.

        Args:
            meta: Cache record (may be empty)

        Returns:
            Headers dict; empty in bust mode
        """
        if self.cache_mode == CACHE_MODE_BUST:
            logger.debug(f"{LOG_PROCESS} Cache bust: validators not sent")
            return {}

        headers = {}
        if meta.get(META_ETAG):
            headers[HEADER_IF_NONE_MATCH] = meta[META_ETAG]
        if meta.get(META_LAST_MODIFIED):
            headers[HEADER_IF_MODIFIED_SINCE] = meta[META_LAST_MODIFIED]
        return headers

    def _revalidated(
        self,
        url: str,
        body_path: Path,
        meta: dict,
        response: FetchResult,
        attempts: int
    ) -> FetchResult:
        """Cache hit confirmed by the server; body left as is."""
        record = dict(meta)
        record.setdefault(META_URL, url)
        record.setdefault(META_LOCAL_PATH, str(body_path))
        if response.etag:
            record[META_ETAG] = response.etag
        if response.last_modified:
            record[META_LAST_MODIFIED] = response.last_modified
        record[META_VALIDATED_AT] = _now()
        self.metadata.write(url, record)

        logger.info(f"{LOG_OUTPUT} Cache hit (304) for {url}")

        return FetchResult(
            success=True,
            url=url,
            path=body_path,
            from_cache=True,
            status_code=HTTP_NOT_MODIFIED,
            etag=record.get(META_ETAG),
            last_modified=record.get(META_LAST_MODIFIED),
            size_bytes=body_path.stat().st_size,
            attempts=attempts,
        )

    def _store(
        self,
        url: str,
        body_path: Path,
        part_path: Path,
        response: FetchResult,
        attempts: int
    ) -> FetchResult:
        """Publish a freshly downloaded body and its record."""
        os.replace(part_path, body_path)

        record = {
            META_URL: url,
            META_ETAG: response.etag,
            META_LAST_MODIFIED: response.last_modified,
            META_LOCAL_PATH: str(body_path),
            META_SIZE_BYTES: response.size_bytes,
            META_SHA256: response.sha256,
            META_FETCHED_AT: _now(),
        }
        self.metadata.write(url, record)

        logger.info(f"{LOG_OUTPUT} Cached {response.size_bytes} bytes as {body_path.name}")

        return FetchResult(
            success=True,
            url=url,
            path=body_path,
            from_cache=False,
            status_code=response.status_code,
            etag=response.etag,
            last_modified=response.last_modified,
            size_bytes=response.size_bytes,
            attempts=attempts,
        )

    def _discard(self, part_path: Optional[Path]) -> None:
        if part_path is not None and part_path.exists():
            try:
                part_path.unlink()
            except OSError as e:
                logger.warning(f"Cannot remove partial download {part_path.name}: {e}")

    async def close(self):
        """Close the underlying HTTP session."""
        await self.http_handler.close()


__all__ = ['FetchCache']
