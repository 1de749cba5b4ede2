# Path: content_installer/core/__init__.py
"""
Installer Core Module

Core utilities for the installer: operating settings, logging,
error taxonomy and on-disk metadata records.
"""

from .config_loader import ConfigLoader
from .logger import get_logger, configure_logging
from .metadata_store import MetadataStore, key_hash, sha256_file
from .exceptions import (
    InstallerError,
    ConfigurationError,
    FetchError,
    ManifestResolutionError,
    ExtractionError,
    FilesystemError,
    SourceResolutionError,
)

__all__ = [
    'ConfigLoader',
    'get_logger',
    'configure_logging',
    'MetadataStore',
    'key_hash',
    'sha256_file',
    'InstallerError',
    'ConfigurationError',
    'FetchError',
    'ManifestResolutionError',
    'ExtractionError',
    'FilesystemError',
    'SourceResolutionError',
]
