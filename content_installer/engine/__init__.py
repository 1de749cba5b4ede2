# Path: content_installer/engine/__init__.py
"""
Installer Engine Module

Package installation components.
Exports public APIs for install workflow execution.

Architecture:
- InstallCoordinator: Main orchestrator
- FetchCache: Revalidating HTTP cache (HTTPHandler + RetryManager)
- ChangeDetector: Skip-unchanged signatures
- AtomicInstaller: Stage-then-rename publishing
- ConfigResolver / ManifestResolver: Configuration and manifest lookup
- Reconciler: Stale package purge
"""

from content_installer.engine.coordinator import InstallCoordinator
from content_installer.engine.fetch_cache import FetchCache
from content_installer.engine.protocol_handlers import HTTPHandler
from content_installer.engine.stream_handler import StreamHandler
from content_installer.engine.retry_manager import RetryManager
from content_installer.engine.change_detector import ChangeDetector
from content_installer.engine.atomic_installer import AtomicInstaller, unwrap_single_root
from content_installer.engine.config_resolver import ConfigResolver, ResolvedConfiguration
from content_installer.engine.manifest_resolver import ManifestResolver
from content_installer.engine.reconciler import Reconciler
from content_installer.engine.sources import (
    SourceKind,
    SourceDescriptor,
    PackageSpec,
    classify_source,
)
from content_installer.engine.result import (
    FetchResult,
    ExtractionResult,
    InstallResult,
    ChangeCheck,
    InstallOutcome,
    InstallReport,
)

__all__ = [
    # Main coordinator
    'InstallCoordinator',

    # Fetching
    'FetchCache',
    'HTTPHandler',
    'StreamHandler',
    'RetryManager',

    # Installing
    'ChangeDetector',
    'AtomicInstaller',
    'unwrap_single_root',
    'Reconciler',

    # Configuration
    'ConfigResolver',
    'ResolvedConfiguration',
    'ManifestResolver',
    'SourceKind',
    'SourceDescriptor',
    'PackageSpec',
    'classify_source',

    # Results
    'FetchResult',
    'ExtractionResult',
    'InstallResult',
    'ChangeCheck',
    'InstallOutcome',
    'InstallReport',
]
