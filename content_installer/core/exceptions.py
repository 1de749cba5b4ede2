# Path: content_installer/core/exceptions.py
"""
Installer Exceptions

Error taxonomy for the content installer.

Architecture:
- ConfigurationError is fatal for the whole run and carries an exit code
- Every other error is scoped to a single package and ends up as that
  package's failed InstallOutcome
"""

from typing import Optional

from content_installer.constants import EXIT_CONFIG_UNREADABLE


class InstallerError(Exception):
    """Base class for all installer errors."""
    pass


class ConfigurationError(InstallerError):
    """
    Configuration document missing, unparsable, or version not usable.

    Attributes:
        exit_code: Process exit code for this condition
    """

    def __init__(self, message: str, exit_code: int = EXIT_CONFIG_UNREADABLE):
        super().__init__(message)
        self.exit_code = exit_code


class FetchError(InstallerError):
    """
    Network or HTTP failure.

    Attributes:
        url: Requested URL
        status_code: HTTP status code, None for connection-level failures
        retryable: Whether the failure is transient
    """

    def __init__(
        self,
        message: str,
        url: str = '',
        status_code: Optional[int] = None,
        retryable: bool = False
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.retryable = retryable


class ManifestResolutionError(InstallerError):
    """Manifest fetched but no usable download URL found inside it."""
    pass


class ExtractionError(InstallerError):
    """Archive could not be unpacked."""
    pass


class FilesystemError(InstallerError):
    """Copy, rename or mkdir failure."""
    pass


class SourceResolutionError(InstallerError):
    """Package source is missing or is not a URL, directory or archive."""
    pass


__all__ = [
    'InstallerError',
    'ConfigurationError',
    'FetchError',
    'ManifestResolutionError',
    'ExtractionError',
    'FilesystemError',
    'SourceResolutionError',
]
