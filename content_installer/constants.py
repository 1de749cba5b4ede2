# Path: content_installer/constants.py
"""
Content Installer Constants

Module-wide constants for fetch, extraction and install operations.
Extraction-specific constants live in engine/extraction/constants.py.

No hardcoded paths in components - defaults below are only used when
the environment does not provide a value (see core/config_loader.py).
"""

import re

# ============================================================================
# PACKAGE KINDS
# ============================================================================
KIND_ENGINE: str = 'engine'
KIND_EXTENSION: str = 'extension'
KIND_SCENARIO: str = 'scenario'

# Processing order is fixed: engines, then extensions, then scenarios
PACKAGE_KINDS: tuple = (KIND_ENGINE, KIND_EXTENSION, KIND_SCENARIO)

# Configuration document map names per kind
KIND_CONFIG_KEYS: dict = {
    KIND_ENGINE: 'engines',
    KIND_EXTENSION: 'extensions',
    KIND_SCENARIO: 'scenarios',
}

# Destination directory names inside the data directory
KIND_DIRECTORY_NAMES: dict = {
    KIND_ENGINE: 'engines',
    KIND_EXTENSION: 'extensions',
    KIND_SCENARIO: 'scenarios',
}

# Names never purged by the reconciler, per kind
PRESERVED_NAMES: dict = {
    KIND_ENGINE: frozenset(),
    KIND_EXTENSION: frozenset(),
    KIND_SCENARIO: frozenset({'sandbox'}),
}

# ============================================================================
# OUTCOME STATUS VALUES
# ============================================================================
STATUS_INSTALLED: str = 'installed'
STATUS_SKIPPED: str = 'skipped'
STATUS_FAILED: str = 'failed'

# ============================================================================
# HTTP STATUS CODES
# ============================================================================
HTTP_NOT_MODIFIED: int = 304
HTTP_SERVER_ERROR: int = 500
HTTP_BAD_GATEWAY: int = 502
HTTP_SERVICE_UNAVAILABLE: int = 503
HTTP_GATEWAY_TIMEOUT: int = 504
# Client errors (4xx) are never retried
RETRYABLE_STATUS_CODES: list = [
    HTTP_SERVER_ERROR,
    HTTP_BAD_GATEWAY,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_GATEWAY_TIMEOUT
]

# ============================================================================
# FETCH CONFIGURATION DEFAULTS
# ============================================================================
DEFAULT_CHUNK_SIZE: int = 8192  # 8KB chunks for streaming
DEFAULT_TIMEOUT: int = 300  # 5 minutes for large archives
DEFAULT_CONNECT_TIMEOUT: int = 30
DEFAULT_RETRY_ATTEMPTS: int = 4  # Total attempts, first one included
DEFAULT_RETRY_DELAY: float = 0.8  # Base delay, doubled per attempt
DEFAULT_MAX_RETRY_DELAY: float = 30.0
DEFAULT_RETRY_JITTER: float = 0.1
DEFAULT_MAX_REDIRECTS: int = 5

# ============================================================================
# CACHE MODES
# ============================================================================
CACHE_MODE_REVALIDATE: str = 'revalidate'
CACHE_MODE_BUST: str = 'bust'
CACHE_MODES: tuple = (CACHE_MODE_REVALIDATE, CACHE_MODE_BUST)

# ============================================================================
# CHANGE DETECTION DEFAULTS
# ============================================================================
CHECKSUM_MODE_AUTO: str = 'auto'
CHECKSUM_MODE_FORCE: str = 'force'
CHECKSUM_MODE_OFF: str = 'off'
CHECKSUM_MODES: tuple = (CHECKSUM_MODE_AUTO, CHECKSUM_MODE_FORCE, CHECKSUM_MODE_OFF)
DEFAULT_CHECKSUM_THRESHOLD_BYTES: int = 209715200  # 200MB
DEFAULT_DIR_MAX_FILES: int = 10000

# ============================================================================
# VERSION RESOLUTION
# ============================================================================
DEFAULT_FALLBACK_MAJOR_VERSION: str = '13'
VERSION_ALIASES: frozenset = frozenset({'latest', 'stable'})
VERSION_PATTERN = re.compile(r'^\d+(\.\d+){0,2}$')

# ============================================================================
# DEFAULT LOCATIONS
# ============================================================================
DEFAULT_DATA_DIR: str = '/data/Data'
DEFAULT_CONFIG_PATH: str = '/config/container-config.json'
DEFAULT_CACHE_DIR: str = '/data/container_cache/components'

# ============================================================================
# ENVIRONMENT VARIABLE NAMES
# ============================================================================
ENV_VERSION: str = 'INSTALLER_VERSION'
ENV_FALLBACK_MAJOR_VERSION: str = 'INSTALLER_FALLBACK_MAJOR_VERSION'
ENV_DATA_DIR: str = 'INSTALLER_DATA_DIR'
ENV_CONFIG_PATH: str = 'INSTALLER_CONFIG_PATH'
ENV_CACHE_DIR: str = 'INSTALLER_CACHE_DIR'
ENV_CONTAINER_CACHE: str = 'INSTALLER_CONTAINER_CACHE'
ENV_DRY_RUN: str = 'INSTALLER_DRY_RUN'
ENV_DEBUG: str = 'INSTALLER_DEBUG'
ENV_CACHE_MODE: str = 'INSTALLER_CACHE_MODE'
ENV_CACHE_BUST: str = 'INSTALLER_CACHE_BUST'
ENV_FORCE_BUILTIN_EXTRACT: str = 'INSTALLER_FORCE_BUILTIN_EXTRACT'
ENV_CHECKSUM_MODE: str = 'INSTALLER_CHECKSUM_MODE'
ENV_CHECKSUM_THRESHOLD_BYTES: str = 'INSTALLER_CHECKSUM_THRESHOLD_BYTES'
ENV_DIR_MAX_FILES: str = 'INSTALLER_DIR_MAX_FILES'
ENV_RETRY_ATTEMPTS: str = 'INSTALLER_RETRY_ATTEMPTS'
ENV_RETRY_DELAY: str = 'INSTALLER_RETRY_DELAY'
ENV_MAX_RETRY_DELAY: str = 'INSTALLER_MAX_RETRY_DELAY'
ENV_RETRY_JITTER: str = 'INSTALLER_RETRY_JITTER'
ENV_REQUEST_TIMEOUT: str = 'INSTALLER_REQUEST_TIMEOUT'
ENV_CONNECT_TIMEOUT: str = 'INSTALLER_CONNECT_TIMEOUT'
ENV_MAX_REDIRECTS: str = 'INSTALLER_MAX_REDIRECTS'
ENV_CHUNK_SIZE: str = 'INSTALLER_CHUNK_SIZE'
ENV_PRESERVE: str = 'INSTALLER_PRESERVE'
ENV_LOG_LEVEL: str = 'INSTALLER_LOG_LEVEL'
ENV_LOG_CONSOLE: str = 'INSTALLER_LOG_CONSOLE'
ENV_LOG_DIR: str = 'INSTALLER_LOG_DIR'

TRUTHY_VALUES: tuple = ('true', '1', 'yes', 'on')

# ============================================================================
# EXIT CODES
# ============================================================================
EXIT_OK: int = 0
EXIT_UNEXPECTED: int = 1
EXIT_CONFIG_UNREADABLE: int = 2
EXIT_NO_VERSION_MAP: int = 3
EXIT_VERSION_MISSING: int = 4
EXIT_VERSION_UNSUPPORTED: int = 5

# ============================================================================
# STAGING
# ============================================================================
STAGING_PREFIX: str = '.staging-'
STAGING_EXTRACT_PREFIX: str = '.staging-extract-'

# ============================================================================
# IPO LOGGING PREFIXES
# ============================================================================
LOG_INPUT: str = '[INPUT]'
LOG_PROCESS: str = '[PROCESS]'
LOG_OUTPUT: str = '[OUTPUT]'
DRY_RUN_MARKER: str = '(dry-run)'

# ============================================================================
# LOGGING COMPONENTS
# ============================================================================
LOGGER_ROOT: str = 'content_installer'
LOGGER_CORE: str = 'content_installer.core'
LOGGER_ENGINE: str = 'content_installer.engine'
LOGGER_CLI: str = 'content_installer.cli'
LOGGER_EXTRACTION: str = 'content_installer.extraction'

# ============================================================================
# LOG FORMAT
# ============================================================================
LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'
LOG_FILE_ACTIVITY: str = 'installer_activity.log'
LOG_FILE_FETCH: str = 'fetches.log'
LOG_FILE_ERRORS: str = 'errors.log'
