# Path: content_installer/engine/stream_handler.py
"""
Stream Handler

Memory-efficient streaming of HTTP bodies to disk.
Writes directly to disk without loading the entire body into memory.

Architecture:
- Chunk-based streaming (8KB default)
- Progress tracking
- SHA-256 of the written body computed while streaming
- Async I/O through aiofiles
- Drain mode for dry-run (bytes counted, nothing written)
"""

import hashlib
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles

from content_installer.core.logger import get_logger
from content_installer.constants import (
    DEFAULT_CHUNK_SIZE,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')

PROGRESS_LOG_EVERY_CHUNKS = 100


class StreamHandler:
    """
    Handles streaming a response body to disk.

    Example:
        handler = StreamHandler(chunk_size=8192)
        written = await handler.stream_to_file(
            response.content.iter_chunked(8192),
            Path('/cache/abc.bin.part'),
        )
    """

    def __init__(self, chunk_size: Optional[int] = None):
        """
        Initialize stream handler.

        Args:
            chunk_size: Size of chunks to read/write (bytes)
        """
        self.chunk_size = chunk_size if chunk_size is not None else DEFAULT_CHUNK_SIZE
        self.bytes_written = 0
        self.chunks_written = 0
        self._digest = hashlib.sha256()

    async def stream_to_file(
        self,
        response_stream: AsyncIterator[bytes],
        output_path: Path,
        total_size: Optional[int] = None
    ) -> int:
        """
        Stream response to file, truncating any previous content.

        Args:
            response_stream: Async iterator of byte chunks
            output_path: Path where the body will be written
            total_size: Total expected size (for progress)

        Returns:
            Total bytes written
        """
        logger.debug(f"{LOG_PROCESS} Streaming to: {output_path.name}")

        self.reset()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(output_path, 'wb') as f:
            async for chunk in response_stream:
                if not chunk:
                    continue
                await f.write(chunk)
                self._digest.update(chunk)
                self._track(len(chunk), total_size)

        logger.debug(
            f"{LOG_PROCESS} Stream complete: {self.bytes_written} bytes "
            f"in {self.chunks_written} chunks"
        )

        return self.bytes_written

    async def drain(self, response_stream: AsyncIterator[bytes]) -> int:
        """
        Consume a response without writing it anywhere.

        Returns:
            Total bytes read
        """
        self.reset()
        async for chunk in response_stream:
            if chunk:
                self._track(len(chunk), None)
        return self.bytes_written

    def _track(self, size: int, total_size: Optional[int]) -> None:
        self.bytes_written += size
        self.chunks_written += 1

        if self.chunks_written % PROGRESS_LOG_EVERY_CHUNKS == 0:
            if total_size:
                progress = (self.bytes_written / total_size) * 100
                logger.debug(
                    f"{LOG_PROCESS} Progress: {progress:.1f}% "
                    f"({self.bytes_written}/{total_size} bytes)"
                )
            else:
                logger.debug(f"{LOG_PROCESS} Downloaded: {self.bytes_written} bytes")

    @property
    def sha256(self) -> str:
        """Hex SHA-256 of the bytes written by the last stream_to_file."""
        return self._digest.hexdigest()

    def reset(self):
        """Reset progress counters."""
        self.bytes_written = 0
        self.chunks_written = 0
        self._digest = hashlib.sha256()


__all__ = ['StreamHandler']
