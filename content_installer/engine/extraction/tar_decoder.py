# Path: content_installer/engine/extraction/tar_decoder.py
"""
Built-in Tar Decoder

In-process reader for .tar and .tar.gz archives, used when the external
'tar' utility is missing or disabled.

Architecture:
- Whole file read (and gzip-decompressed) into memory
- 512-byte header walk: name (+ ustar prefix), octal size, type flag
- Directories created, regular files written, other entry types skipped
- Data area advanced by size rounded up to the next block
- Stops at two consecutive all-zero blocks or end of data
- Entries escaping the target directory raise ExtractionError
"""

import gzip
import zlib
from pathlib import Path

from content_installer.core.logger import get_logger
from content_installer.core.exceptions import ExtractionError
from content_installer.constants import LOG_PROCESS
from content_installer.engine.extraction.constants import (
    TAR_BLOCK_SIZE,
    TAR_END_ZERO_BLOCKS,
    TAR_NAME_FIELD,
    TAR_SIZE_FIELD,
    TAR_CHECKSUM_FIELD,
    TAR_TYPE_FIELD,
    TAR_MAGIC_FIELD,
    TAR_PREFIX_FIELD,
    TAR_MAGIC_USTAR,
    TAR_TYPE_REGULAR,
    TAR_TYPE_DIRECTORY,
)

logger = get_logger(__name__, 'extraction')

ZERO_BLOCK = bytes(TAR_BLOCK_SIZE)


def _field_str(raw: bytes) -> str:
    return raw.split(b'\0', 1)[0].decode('utf-8', errors='replace')


def _field_octal(raw: bytes, name: str) -> int:
    text = raw.replace(b'\0', b' ').strip()
    if not text:
        return 0
    try:
        return int(text, 8)
    except ValueError:
        raise ExtractionError(f"Invalid octal field in tar header for '{name}': {raw!r}")


def _round_up(size: int) -> int:
    return (size + TAR_BLOCK_SIZE - 1) // TAR_BLOCK_SIZE * TAR_BLOCK_SIZE


class TarDecoder:
    """
    Minimal tar reader.

    Example:
        decoder = TarDecoder()
        files = decoder.extract(Path('pkg.tar.gz'), Path('/tmp/out'), compressed=True)
    """

    def __init__(self):
        self.files_written = 0
        self.directories_created = 0
        self.entries_skipped = 0

    def extract(self, archive_path: Path, target_dir: Path, compressed: bool = False) -> int:
        """
        Extract archive file into target_dir.

        Args:
            archive_path: .tar or .tar.gz file
            target_dir: Existing or creatable destination
            compressed: Whether the file is gzip-compressed

        Returns:
            Number of regular files written

        Raises:
            ExtractionError: Corrupt gzip stream, bad header or unsafe path
        """
        data = Path(archive_path).read_bytes()

        if compressed:
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as e:
                raise ExtractionError(f"Invalid gzip data in {Path(archive_path).name}: {e}")

        return self.extract_bytes(data, target_dir)

    def extract_bytes(self, data: bytes, target_dir: Path) -> int:
        """
        Extract an uncompressed tar stream held in memory.

        Args:
            data: Raw tar bytes
            target_dir: Destination directory

        Returns:
            Number of regular files written
        """
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        root = target_dir.resolve()

        self.files_written = 0
        self.directories_created = 0
        self.entries_skipped = 0

        offset = 0
        zero_blocks = 0

        while offset + TAR_BLOCK_SIZE <= len(data):
            header = data[offset:offset + TAR_BLOCK_SIZE]
            offset += TAR_BLOCK_SIZE

            if header == ZERO_BLOCK:
                zero_blocks += 1
                if zero_blocks >= TAR_END_ZERO_BLOCKS:
                    break
                continue
            zero_blocks = 0

            self._verify_checksum(header)

            name = self._entry_name(header)
            size = _field_octal(header[TAR_SIZE_FIELD], name)
            typeflag = header[TAR_TYPE_FIELD]

            body = data[offset:offset + size]
            if len(body) < size:
                raise ExtractionError(f"Truncated tar entry '{name}' ({len(body)}/{size} bytes)")
            offset += _round_up(size)

            if not name:
                continue

            target = self._safe_target(root, name)

            if typeflag == TAR_TYPE_DIRECTORY:
                target.mkdir(parents=True, exist_ok=True)
                self.directories_created += 1
            elif typeflag in TAR_TYPE_REGULAR:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(body)
                self.files_written += 1
            else:
                logger.debug(f"{LOG_PROCESS} Skipping tar entry '{name}' (type {typeflag!r})")
                self.entries_skipped += 1

        logger.info(
            f"{LOG_PROCESS} Built-in tar: {self.files_written} files, "
            f"{self.directories_created} directories, {self.entries_skipped} skipped"
        )
        return self.files_written

    def _entry_name(self, header: bytes) -> str:
        name = _field_str(header[TAR_NAME_FIELD])
        if header[TAR_MAGIC_FIELD].startswith(TAR_MAGIC_USTAR):
            prefix = _field_str(header[TAR_PREFIX_FIELD])
            if prefix:
                name = f"{prefix.rstrip('/')}/{name}"
        return name

    def _verify_checksum(self, header: bytes) -> None:
        stored = _field_octal(header[TAR_CHECKSUM_FIELD], 'checksum')
        blanked = header[:TAR_CHECKSUM_FIELD.start] + b' ' * 8 + header[TAR_CHECKSUM_FIELD.stop:]
        unsigned = sum(blanked)
        signed = sum(b - 256 if b > 127 else b for b in blanked)
        if stored not in (unsigned, signed):
            raise ExtractionError(f"Tar header checksum mismatch (stored {stored}, computed {unsigned})")

    def _safe_target(self, root: Path, name: str) -> Path:
        """
        Resolve entry path inside root.

        Raises:
            ExtractionError: If the entry is absolute or escapes root
        """
        relative = Path(name)
        if relative.is_absolute() or '..' in relative.parts:
            raise ExtractionError(f"Unsafe path in archive: {name}")

        target = root / relative
        try:
            target.resolve().relative_to(root)
        except ValueError:
            raise ExtractionError(f"Unsafe path in archive: {name}")
        return target


__all__ = ['TarDecoder']
