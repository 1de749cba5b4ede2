# Path: content_installer/engine/extraction/__init__.py
"""
Extraction Module

Archive unpacking for packages.

Use ArchiveHandler for any supported archive.
TarDecoder is the in-process fallback for .tar and .tar.gz.
"""

from content_installer.engine.extraction.archive_handler import (
    ArchiveHandler,
    detect_archive_format,
    is_archive_name,
)
from content_installer.engine.extraction.tar_decoder import TarDecoder

__all__ = [
    'ArchiveHandler',
    'detect_archive_format',
    'is_archive_name',
    'TarDecoder',
]
