# Path: content_installer/engine/config_resolver.py
"""
Configuration Resolver

Loads the JSON configuration document and selects the active version.

Architecture:
- Document errors (unreadable / unparsable) -> ConfigurationError, exit 2
- No 'versions' map -> exit 3
- Requested major version absent -> exit 4
- Requested major version marked supported: false -> exit 5
- Result is an explicit ResolvedConfiguration handed to the orchestrator

Version rules:
- 'latest', 'stable' or anything not matching N[.N[.N]] -> fallback major (warning)
- otherwise the part before the first dot ('13.307' -> '13')
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import ConfigurationError
from content_installer.constants import (
    PACKAGE_KINDS,
    KIND_CONFIG_KEYS,
    KIND_DIRECTORY_NAMES,
    VERSION_ALIASES,
    VERSION_PATTERN,
    DEFAULT_FALLBACK_MAJOR_VERSION,
    EXIT_CONFIG_UNREADABLE,
    EXIT_NO_VERSION_MAP,
    EXIT_VERSION_MISSING,
    EXIT_VERSION_UNSUPPORTED,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

DOC_VERSIONS = 'versions'
DOC_SUPPORTED = 'supported'
DOC_INSTALL = 'install'


@dataclass(frozen=True)
class ResolvedConfiguration:
    """
    Everything the orchestrator needs to know about the active version.

    Attributes:
        requested_version: Version string as configured
        major_version: Resolved major version key
        version_config: The versions[major] entry
        packages: Top-level package maps per kind (id -> entry)
        data_dir: Root of the installed tree
        cache_dir: Fetch cache and staging root
    """
    requested_version: str
    major_version: str
    version_config: dict[str, Any]
    packages: dict[str, dict[str, Any]] = field(default_factory=dict)
    data_dir: Path = Path('.')
    cache_dir: Path = Path('.')

    def install_map(self, kind: str) -> Optional[dict[str, Any]]:
        """
        Per-version install entries for a kind.

        Returns:
            id -> override mapping, or None when the kind is not configured
        """
        install = self.version_config.get(DOC_INSTALL)
        if not isinstance(install, dict):
            return None
        entries = install.get(KIND_CONFIG_KEYS[kind])
        return entries if isinstance(entries, dict) else None

    def destination_root(self, kind: str) -> Path:
        return self.data_dir / KIND_DIRECTORY_NAMES[kind]

    def merged_entry(self, kind: str, package_id: str, override: dict[str, Any]) -> dict[str, Any]:
        """
        Top-level entry with the per-version override applied (override wins).

        Args:
            kind: Package kind
            package_id: Package id
            override: Per-version entry (must be a mapping)

        Returns:
            New merged dictionary
        """
        base = self.packages.get(kind, {}).get(package_id)
        if not isinstance(base, dict):
            logger.warning(
                f"{kind} '{package_id}' is not defined at top level; using per-version entry only"
            )
            base = {}
        return {**base, **override}


class ConfigResolver:
    """
    Resolves the configuration document against the requested version.

    Example:
        resolver = ConfigResolver(config)
        resolved = resolver.resolve()
        print(resolved.major_version)
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize configuration resolver.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.fallback_major = str(
            self.config.get('fallback_major_version', DEFAULT_FALLBACK_MAJOR_VERSION)
        )

    def load_document(self, path: Optional[Path] = None) -> dict[str, Any]:
        """
        Read and parse the configuration document.

        Raises:
            ConfigurationError: Unreadable, unparsable or not a JSON object (exit 2)
        """
        path = Path(path) if path else Path(self.config.get('config_path'))
        logger.info(f"{LOG_INPUT} Loading configuration document {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}", EXIT_CONFIG_UNREADABLE)
        except ValueError as e:
            raise ConfigurationError(f"Cannot parse configuration {path}: {e}", EXIT_CONFIG_UNREADABLE)

        if not isinstance(document, dict):
            raise ConfigurationError(f"Configuration {path} is not a JSON object", EXIT_CONFIG_UNREADABLE)

        return document

    def resolve_major_version(self, version: Optional[str]) -> str:
        """
        Map a requested version string to a major version key.

        Args:
            version: e.g. '13.307', '12', 'latest'

        Returns:
            Major version string
        """
        text = str(version).strip() if version is not None else ''

        if text.lower() in VERSION_ALIASES or not VERSION_PATTERN.match(text):
            logger.warning(
                f"Version '{text}' is not a numeric version; "
                f"falling back to major version {self.fallback_major}"
            )
            return self.fallback_major

        return text.split('.')[0]

    def resolve(
        self,
        document: Optional[dict[str, Any]] = None,
        version: Optional[str] = None
    ) -> ResolvedConfiguration:
        """
        Produce the resolved configuration for this run.

        Args:
            document: Parsed document (loaded from config_path if None)
            version: Requested version (from settings if None)

        Returns:
            ResolvedConfiguration

        Raises:
            ConfigurationError: With exit code 2, 3, 4 or 5
        """
        if document is None:
            document = self.load_document()

        requested = version if version is not None else self.config.get('version')

        versions = document.get(DOC_VERSIONS)
        if not isinstance(versions, dict):
            raise ConfigurationError("Configuration has no 'versions' map", EXIT_NO_VERSION_MAP)

        major = self.resolve_major_version(requested)

        version_config = versions.get(major)
        if not isinstance(version_config, dict):
            raise ConfigurationError(
                f"Major version {major} is not present in the configuration",
                EXIT_VERSION_MISSING
            )

        if version_config.get(DOC_SUPPORTED) is False:
            raise ConfigurationError(
                f"Major version {major} is marked unsupported",
                EXIT_VERSION_UNSUPPORTED
            )

        packages = {}
        for kind in PACKAGE_KINDS:
            entries = document.get(KIND_CONFIG_KEYS[kind])
            packages[kind] = entries if isinstance(entries, dict) else {}

        logger.info(f"{LOG_OUTPUT} Active major version {major} (requested '{requested}')")

        return ResolvedConfiguration(
            requested_version=str(requested),
            major_version=major,
            version_config=version_config,
            packages=packages,
            data_dir=Path(self.config.get('data_dir')),
            cache_dir=Path(self.config.get('cache_dir')),
        )


__all__ = ['ConfigResolver', 'ResolvedConfiguration']
