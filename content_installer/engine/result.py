# Path: content_installer/engine/result.py
"""
Installer Result Objects

Type-safe, structured results for installer operations.
Replaces raw dictionaries with proper data classes.

Architecture:
- FetchResult: Single URL fetch through the cache
- ExtractionResult: Single archive extraction
- InstallResult: Single atomic directory publish
- ChangeCheck: Change detector verdict
- InstallOutcome: Terminal state of one package in one run
- InstallReport: All outcomes of one run plus purge results
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from content_installer.constants import (
    STATUS_INSTALLED,
    STATUS_SKIPPED,
    STATUS_FAILED,
    PACKAGE_KINDS,
)


@dataclass
class FetchResult:
    """
    Result of fetching one URL through the fetch cache.

    Attributes:
        success: Whether a usable body is available
        url: Requested URL
        path: Local path of the cached body
        from_cache: True when the cached body was reused (304 or dry-run)
        status_code: Last HTTP status code seen
        etag: Validator returned by the server
        last_modified: Validator returned by the server
        size_bytes: Body size in bytes
        sha256: SHA-256 of the body written to disk
        attempts: Number of network attempts made
        error_message: Error message if failed
    """
    success: bool
    url: str = ''
    path: Optional[Path] = None
    from_cache: bool = False
    status_code: Optional[int] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    size_bytes: int = 0
    sha256: Optional[str] = None
    attempts: int = 0
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'success': self.success,
            'url': self.url,
            'path': str(self.path) if self.path else None,
            'from_cache': self.from_cache,
            'status_code': self.status_code,
            'etag': self.etag,
            'last_modified': self.last_modified,
            'size_bytes': self.size_bytes,
            'sha256': self.sha256,
            'attempts': self.attempts,
            'error_message': self.error_message,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ExtractionResult:
    """
    Result of archive extraction.

    Attributes:
        success: Whether extraction succeeded
        archive_path: Archive that was extracted
        extract_directory: Where files were written
        method: 'external' or 'builtin'
        files_extracted: Number of file entries written (built-in decoder only)
        error_message: Error message if failed
    """
    success: bool
    archive_path: Optional[Path] = None
    extract_directory: Optional[Path] = None
    method: Optional[str] = None
    files_extracted: int = 0
    duration: float = 0.0
    error_message: Optional[str] = None


@dataclass
class InstallResult:
    """
    Result of publishing a directory into its destination.

    Attributes:
        success: Whether the destination now holds the new content
        destination: Final destination directory
        staging_directory: Staging directory used for the copy
        copy_method: 'rsync', 'cp' or 'python'
        error_message: Error message if failed
    """
    success: bool
    destination: Optional[Path] = None
    staging_directory: Optional[Path] = None
    copy_method: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class ChangeCheck:
    """Change detector verdict for one local path."""
    changed: bool
    reason: str = ''
    signature: dict[str, Any] = field(default_factory=dict)


@dataclass
class InstallOutcome:
    """
    Terminal state of one package in one run. Never persisted.

    Attributes:
        package_id: Package id from configuration
        kind: Package kind
        success: True for installed and skipped packages
        skipped: True when unchanged and already installed
        error: Error message for failed packages
        destination: Destination directory when one was written
        note: Extra detail (e.g. non-archive artifact left in cache)
    """
    package_id: str
    kind: str
    success: bool
    skipped: bool = False
    error: Optional[str] = None
    destination: Optional[Path] = None
    note: Optional[str] = None

    @property
    def status(self) -> str:
        """installed, skipped or failed."""
        if not self.success:
            return STATUS_FAILED
        return STATUS_SKIPPED if self.skipped else STATUS_INSTALLED

    @classmethod
    def installed(cls, package_id: str, kind: str, destination: Optional[Path] = None,
                  note: Optional[str] = None) -> 'InstallOutcome':
        return cls(package_id=package_id, kind=kind, success=True,
                   destination=destination, note=note)

    @classmethod
    def skip(cls, package_id: str, kind: str, destination: Optional[Path] = None,
             note: Optional[str] = None) -> 'InstallOutcome':
        return cls(package_id=package_id, kind=kind, success=True, skipped=True,
                   destination=destination, note=note)

    @classmethod
    def failed(cls, package_id: str, kind: str, error: str) -> 'InstallOutcome':
        return cls(package_id=package_id, kind=kind, success=False, error=error)


@dataclass
class InstallReport:
    """
    Everything one run did.

    Attributes:
        major_version: Resolved major version
        outcomes: Ordered outcomes per kind
        purged: Names removed (or that would be removed in dry-run) per kind
        presence_warnings: Scenario presence-check warnings
        dry_run: Whether mutations were suppressed
    """
    major_version: str
    outcomes: dict[str, list[InstallOutcome]] = field(
        default_factory=lambda: {kind: [] for kind in PACKAGE_KINDS}
    )
    purged: dict[str, list[str]] = field(
        default_factory=lambda: {kind: [] for kind in PACKAGE_KINDS}
    )
    presence_warnings: list[str] = field(default_factory=list)
    dry_run: bool = False
    duration: float = 0.0

    def add(self, outcome: InstallOutcome) -> None:
        self.outcomes.setdefault(outcome.kind, []).append(outcome)

    def all_outcomes(self) -> list[InstallOutcome]:
        """Outcomes in processing order."""
        return [outcome for kind in self.outcomes for outcome in self.outcomes[kind]]

    def outcome_for(self, kind: str, package_id: str) -> Optional[InstallOutcome]:
        for outcome in self.outcomes.get(kind, []):
            if outcome.package_id == package_id:
                return outcome
        return None

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.all_outcomes() if outcome.status == status)

    @property
    def installed_count(self) -> int:
        return self._count(STATUS_INSTALLED)

    @property
    def skipped_count(self) -> int:
        return self._count(STATUS_SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(STATUS_FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'major_version': self.major_version,
            'dry_run': self.dry_run,
            'duration': self.duration,
            'installed': self.installed_count,
            'skipped': self.skipped_count,
            'failed': self.failed_count,
            'outcomes': {
                kind: [
                    {
                        'package_id': o.package_id,
                        'status': o.status,
                        'error': o.error,
                        'destination': str(o.destination) if o.destination else None,
                        'note': o.note,
                    }
                    for o in outcomes
                ]
                for kind, outcomes in self.outcomes.items()
            },
            'purged': self.purged,
            'presence_warnings': self.presence_warnings,
        }


__all__ = [
    'FetchResult',
    'ExtractionResult',
    'InstallResult',
    'ChangeCheck',
    'InstallOutcome',
    'InstallReport',
]
