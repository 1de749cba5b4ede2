# Path: content_installer/engine/sources.py
"""
Package Sources

Typed package descriptions and the source classifier.

Architecture:
- SourceKind: exactly one acquisition path per package
- SourceDescriptor: kind + location, decided once from the merged entry
- PackageSpec: id, kind and source, immutable for the run
- classify_source(): manifest wins over path (with a warning);
  paths become URL, directory or archive, anything else is an error
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from content_installer.core.logger import get_logger
from content_installer.core.exceptions import SourceResolutionError
from content_installer.engine.extraction.archive_handler import is_archive_name

logger = get_logger(__name__, 'engine')

URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)

ENTRY_MANIFEST = 'manifest'
ENTRY_PATH = 'path'


class SourceKind(Enum):
    """Where a package comes from."""
    MANIFEST = 'manifest'
    DIRECT_URL = 'direct_url'
    LOCAL_DIRECTORY = 'local_directory'
    LOCAL_ARCHIVE = 'local_archive'


@dataclass(frozen=True)
class SourceDescriptor:
    """One resolved source variant."""
    kind: SourceKind
    location: str

    @property
    def is_remote(self) -> bool:
        return self.kind in (SourceKind.MANIFEST, SourceKind.DIRECT_URL)

    @property
    def local_path(self) -> Path:
        return Path(self.location).expanduser()


@dataclass(frozen=True)
class PackageSpec:
    """
    A configured package.

    Attributes:
        id: Package id (also the destination directory name)
        kind: engine, extension or scenario
        source: Resolved source descriptor
        entry: Merged configuration entry (extra flags such as check_presence)
    """
    id: str
    kind: str
    source: SourceDescriptor
    entry: dict[str, Any] = field(default_factory=dict, compare=False)


def is_url(location: str) -> bool:
    return bool(URL_PATTERN.match(location))


def classify_location(location: str) -> SourceDescriptor:
    """
    Classify a 'path' value.

    Args:
        location: URL or local filesystem path

    Returns:
        SourceDescriptor for a URL, directory or archive

    Raises:
        SourceResolutionError: Missing path or unrecognized local file
    """
    if is_url(location):
        return SourceDescriptor(SourceKind.DIRECT_URL, location)

    local = Path(location).expanduser()

    if local.is_dir():
        return SourceDescriptor(SourceKind.LOCAL_DIRECTORY, str(local))

    if local.is_file():
        if is_archive_name(local.name):
            return SourceDescriptor(SourceKind.LOCAL_ARCHIVE, str(local))
        raise SourceResolutionError(f"Source is not a directory or a recognized archive: {local}")

    raise SourceResolutionError(f"Source path does not exist: {local}")


def classify_source(package_id: str, entry: dict[str, Any]) -> SourceDescriptor:
    """
    Decide the single source variant of a merged configuration entry.

    Args:
        package_id: Package id (for messages)
        entry: Merged top-level + per-version entry

    Returns:
        SourceDescriptor

    Raises:
        SourceResolutionError: Neither manifest nor path usable
    """
    manifest = entry.get(ENTRY_MANIFEST)
    path = entry.get(ENTRY_PATH)

    if manifest and path:
        logger.warning(f"Package '{package_id}' defines both manifest and path; using manifest")

    if manifest:
        if not isinstance(manifest, str):
            raise SourceResolutionError(f"Package '{package_id}' has a non-string manifest")
        return SourceDescriptor(SourceKind.MANIFEST, manifest.strip())

    if not path:
        raise SourceResolutionError(f"Package '{package_id}' has no valid source (manifest or path)")

    if not isinstance(path, str):
        raise SourceResolutionError(f"Package '{package_id}' has a non-string path")

    return classify_location(path.strip())


__all__ = [
    'SourceKind',
    'SourceDescriptor',
    'PackageSpec',
    'is_url',
    'classify_location',
    'classify_source',
]
