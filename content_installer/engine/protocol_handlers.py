# Path: content_installer/engine/protocol_handlers.py
"""
Protocol Handlers

HTTP/HTTPS GET handler with conditional-request support and streaming.
One call is one network attempt; retry policy lives in retry_manager.py.

Architecture:
- Async HTTP client (aiohttp) with connection pooling
- Conditional headers passed through (If-None-Match / If-Modified-Since)
- 304 reported as not-modified, 5xx raised as retryable FetchError
- 4xx raised as non-retryable FetchError
- Streaming to disk through StreamHandler
"""

import asyncio
from pathlib import Path
from typing import Optional

import aiohttp

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import FetchError
from content_installer.engine.stream_handler import StreamHandler
from content_installer.engine.result import FetchResult
from content_installer.constants import (
    HTTP_NOT_MODIFIED,
    HTTP_SERVER_ERROR,
    RETRYABLE_STATUS_CODES,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_REDIRECTS,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from content_installer.engine.constants import (
    MAX_CONCURRENT_CONNECTIONS,
    FORCE_CLOSE_CONNECTIONS,
    DEFAULT_USER_AGENT,
    DEFAULT_ACCEPT_HEADER,
    DEFAULT_ACCEPT_ENCODING,
    HEADER_USER_AGENT,
    HEADER_ACCEPT,
    HEADER_ACCEPT_ENCODING,
    HEADER_ETAG,
    HEADER_LAST_MODIFIED,
    HEADER_CONTENT_LENGTH,
)

logger = get_logger(__name__, 'engine')


class HTTPHandler:
    """
    HTTP/HTTPS GET handler with streaming.

    Example:
        async with HTTPHandler(config) as handler:
            result = await handler.get(
                url='https://example.com/pkg.zip',
                output_path=Path('/cache/abc.bin.part'),
                headers={'If-None-Match': '"v1"'},
            )
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize HTTP handler.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()

        self.chunk_size = self.config.get('chunk_size', DEFAULT_CHUNK_SIZE)
        self.timeout = self.config.get('request_timeout', DEFAULT_TIMEOUT)
        self.connect_timeout = self.config.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)
        self.max_redirects = self.config.get('max_redirects', DEFAULT_MAX_REDIRECTS)

        self._session: Optional[aiohttp.ClientSession] = None

    async def get(
        self,
        url: str,
        output_path: Optional[Path],
        headers: Optional[dict[str, str]] = None
    ) -> FetchResult:
        """
        Perform a single GET attempt.

        Args:
            url: Source URL
            output_path: Where to stream a 200 body; None drains it (dry-run)
            headers: Extra request headers (validators)

        Returns:
            FetchResult with status_code 200 or 304

        Raises:
            FetchError: On HTTP error status or connection failure
        """
        logger.info(f"{LOG_INPUT} GET {url}")

        request_headers = self._build_headers(headers)

        try:
            session = await self._get_session()

            async with session.get(
                url,
                headers=request_headers,
                allow_redirects=True,
                max_redirects=self.max_redirects,
                timeout=aiohttp.ClientTimeout(
                    total=self.timeout,
                    connect=self.connect_timeout
                )
            ) as response:
                status = response.status

                if status == HTTP_NOT_MODIFIED:
                    logger.info(f"{LOG_OUTPUT} 304 Not Modified: {url}")
                    return FetchResult(
                        success=True,
                        url=url,
                        status_code=status,
                        from_cache=True,
                        etag=response.headers.get(HEADER_ETAG),
                        last_modified=response.headers.get(HEADER_LAST_MODIFIED),
                    )

                if status // 100 != 2:
                    retryable = status in RETRYABLE_STATUS_CODES or status >= HTTP_SERVER_ERROR
                    raise FetchError(
                        f"HTTP {status} for {url}",
                        url=url,
                        status_code=status,
                        retryable=retryable,
                    )

                content_length = response.headers.get(HEADER_CONTENT_LENGTH)
                total_size = int(content_length) if content_length and content_length.isdigit() else None

                stream_handler = StreamHandler(chunk_size=self.chunk_size)
                stream = response.content.iter_chunked(self.chunk_size)

                digest = None
                if output_path is None:
                    size = await stream_handler.drain(stream)
                    logger.info(f"{LOG_PROCESS} Drained {size} bytes (not written)")
                else:
                    size = await stream_handler.stream_to_file(stream, output_path, total_size)
                    digest = stream_handler.sha256

                logger.info(f"{LOG_OUTPUT} Fetched {size} bytes from {url}")

                return FetchResult(
                    success=True,
                    url=url,
                    path=output_path,
                    status_code=status,
                    etag=response.headers.get(HEADER_ETAG),
                    last_modified=response.headers.get(HEADER_LAST_MODIFIED),
                    size_bytes=size,
                    sha256=digest,
                )

        except FetchError:
            raise

        except asyncio.TimeoutError as e:
            raise FetchError(f"Timeout fetching {url}: {e}", url=url, retryable=True) from e

        except aiohttp.TooManyRedirects as e:
            raise FetchError(f"Too many redirects for {url}", url=url, retryable=False) from e

        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError) as e:
            raise FetchError(f"Connection error for {url}: {e}", url=url, retryable=True) from e

        except aiohttp.ClientError as e:
            raise FetchError(f"HTTP error for {url}: {e}", url=url, retryable=False) from e

    def _build_headers(self, custom_headers: Optional[dict[str, str]] = None) -> dict[str, str]:
        """
        Build HTTP request headers.

        Args:
            custom_headers: Optional extra headers

        Returns:
            Dictionary of headers
        """
        headers = {
            HEADER_USER_AGENT: DEFAULT_USER_AGENT,
            HEADER_ACCEPT: DEFAULT_ACCEPT_HEADER,
            HEADER_ACCEPT_ENCODING: DEFAULT_ACCEPT_ENCODING,
        }

        if custom_headers:
            headers.update(custom_headers)

        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session.

        Returns:
            ClientSession instance
        """
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=MAX_CONCURRENT_CONNECTIONS,
                force_close=FORCE_CLOSE_CONNECTIONS
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = ['HTTPHandler']
