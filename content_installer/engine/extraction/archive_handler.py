# Path: content_installer/engine/extraction/archive_handler.py
"""
Archive Handler

Multi-format archive extraction. Prefers system unpack utilities and
falls back to the built-in tar decoder.

Architecture:
- Format detection by filename suffix (hint name first, then archive path)
- External path: 'unzip' for .zip, 'tar' for every tar variant
- Built-in path: .tar and .tar.gz only (TarDecoder, run in a worker thread)
- Common interface (ExtractionResult)
- Dry-run short-circuits before any filesystem mutation

CRITICAL PRINCIPLE: Suffix trust.
The format is decided by name only, never by sniffing content.
"""

import asyncio
import shutil
import time
from pathlib import Path
from typing import Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import ExtractionError
from content_installer.engine.result import ExtractionResult
from content_installer.engine.extraction.tar_decoder import TarDecoder
from content_installer.constants import (
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
    DRY_RUN_MARKER,
)
from content_installer.engine.extraction.constants import (
    ARCHIVE_SUFFIXES,
    BUILTIN_FORMATS,
    FORMAT_ZIP,
    FORMAT_TAR_GZ,
    TOOL_UNZIP,
    TOOL_TAR,
    METHOD_EXTERNAL,
    METHOD_BUILTIN,
)

logger = get_logger(__name__, 'extraction')


def detect_archive_format(name: str) -> Optional[str]:
    """
    Detect archive format from a file name or URL path.

    Args:
        name: File name, path or URL path

    Returns:
        Format id (e.g. 'tar.gz') or None if not a known archive
    """
    name_lower = str(name).lower()
    for suffix, archive_format in ARCHIVE_SUFFIXES:
        if name_lower.endswith(suffix):
            return archive_format
    return None


def is_archive_name(name: str) -> bool:
    """True if name ends with a known archive suffix."""
    return detect_archive_format(name) is not None


class ArchiveHandler:
    """
    Archive extraction front end.

    Example:
        handler = ArchiveHandler(config)
        result = await handler.extract(
            archive_path=Path('/cache/3f2a.bin'),
            target_dir=Path('/cache/.staging-extract-core-1700000000000'),
            source_name='core-1.2.tar.gz',
        )
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize archive handler.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.dry_run = self.config.get('dry_run', False)
        self.force_builtin = self.config.get('force_builtin_extract', False)

    def detect_format(self, archive_path: Path, source_name: Optional[str] = None) -> Optional[str]:
        """Format from the hint name, falling back to the archive path."""
        if source_name:
            archive_format = detect_archive_format(source_name)
            if archive_format:
                return archive_format
        return detect_archive_format(Path(archive_path).name)

    def find_tool(self, archive_format: str) -> Optional[str]:
        """
        Locate the external utility for a format.

        Returns:
            Executable path, or None when missing or disabled
        """
        if self.force_builtin:
            return None
        return shutil.which(TOOL_UNZIP if archive_format == FORMAT_ZIP else TOOL_TAR)

    async def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        source_name: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract archive into target_dir.

        Args:
            archive_path: Archive file on disk
            target_dir: Destination directory (created first)
            source_name: Original name used for format detection

        Returns:
            ExtractionResult
        """
        archive_path = Path(archive_path)
        target_dir = Path(target_dir)

        logger.info(f"{LOG_INPUT} Extracting {source_name or archive_path.name}")

        start_time = time.time()
        result = ExtractionResult(
            success=False,
            archive_path=archive_path,
            extract_directory=target_dir
        )

        archive_format = self.detect_format(archive_path, source_name)
        if archive_format is None:
            result.error_message = f"Unsupported archive format: {source_name or archive_path.name}"
            logger.error(f"{LOG_OUTPUT} {result.error_message}")
            return result

        if self.dry_run:
            logger.info(f"{LOG_OUTPUT} {DRY_RUN_MARKER} Would extract {archive_format} to {target_dir}")
            result.success = True
            return result

        try:
            if not archive_path.is_file():
                raise ExtractionError(f"Archive not found: {archive_path}")

            target_dir.mkdir(parents=True, exist_ok=True)

            tool = self.find_tool(archive_format)
            if tool:
                await self._extract_external(tool, archive_format, archive_path, target_dir)
                result.method = METHOD_EXTERNAL
            else:
                result.files_extracted = await asyncio.to_thread(
                    self._extract_builtin, archive_format, archive_path, target_dir
                )
                result.method = METHOD_BUILTIN

            result.success = True
            result.duration = time.time() - start_time
            logger.info(
                f"{LOG_OUTPUT} Extraction complete ({result.method}) in {result.duration:.2f}s"
            )

        except (ExtractionError, OSError) as e:
            result.error_message = str(e)
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} Extraction failed: {result.error_message}")

        return result

    async def _extract_external(
        self,
        tool: str,
        archive_format: str,
        archive_path: Path,
        target_dir: Path
    ) -> None:
        """
        Run unzip/tar as a subprocess.

        Raises:
            ExtractionError: Non-zero exit status
        """
        if archive_format == FORMAT_ZIP:
            args = [tool, '-q', '-o', str(archive_path), '-d', str(target_dir)]
        else:
            args = [tool, '-xf', str(archive_path), '-C', str(target_dir)]

        logger.info(f"{LOG_PROCESS} Running {' '.join(args)}")

        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise ExtractionError(
                f"{Path(tool).name} exited with status {process.returncode}: {message}"
            )

    def _extract_builtin(self, archive_format: str, archive_path: Path, target_dir: Path) -> int:
        """
        Decode with TarDecoder.

        Raises:
            ExtractionError: Format not readable in-process, or decode failure
        """
        if archive_format == FORMAT_ZIP:
            raise ExtractionError(
                "No 'unzip' utility available and the built-in extractor does not support .zip"
            )
        if archive_format not in BUILTIN_FORMATS:
            raise ExtractionError(
                f"The built-in extractor does not support .{archive_format} "
                f"(only .tar and .tar.gz); install the 'tar' utility"
            )

        logger.info(f"{LOG_PROCESS} Using built-in tar decoder")
        return TarDecoder().extract(
            archive_path,
            target_dir,
            compressed=archive_format == FORMAT_TAR_GZ
        )

    @staticmethod
    def get_supported_formats() -> list:
        """Known archive suffixes."""
        return [suffix for suffix, _ in ARCHIVE_SUFFIXES]


__all__ = [
    'ArchiveHandler',
    'detect_archive_format',
    'is_archive_name',
]
