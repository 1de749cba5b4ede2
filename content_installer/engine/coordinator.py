# Path: content_installer/engine/coordinator.py
"""
Install Coordinator

Main workflow orchestrator for package installation.
Coordinates: resolve version -> classify source -> fetch -> extract ->
publish -> purge, for engines, then extensions, then scenarios.

Architecture:
- Explicit ResolvedConfiguration passed in (no global state)
- One package at a time, in configuration order
- Every package ends installed, skipped or failed (InstallOutcome)
- A failure never stops the next package
- Purge for a kind runs after all of its installs
- IPO logging throughout
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import FetchError
from content_installer.engine.fetch_cache import FetchCache
from content_installer.engine.change_detector import ChangeDetector
from content_installer.engine.atomic_installer import AtomicInstaller
from content_installer.engine.config_resolver import ConfigResolver, ResolvedConfiguration
from content_installer.engine.manifest_resolver import ManifestResolver
from content_installer.engine.reconciler import Reconciler
from content_installer.engine.sources import SourceKind, PackageSpec, classify_source
from content_installer.engine.extraction.archive_handler import is_archive_name
from content_installer.engine.result import InstallOutcome, InstallReport, InstallResult
from content_installer.constants import (
    PACKAGE_KINDS,
    KIND_SCENARIO,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
    DRY_RUN_MARKER,
)

logger = get_logger(__name__, 'engine')

ENTRY_CHECK_PRESENCE = 'check_presence'
ENTRY_INSTALL_AT_STARTUP = 'install_at_startup'


class InstallCoordinator:
    """
    Coordinates a complete install run.

    Workflow:
    1. Resolve configuration document and active major version
    2. Ensure kind roots exist
    3. For each kind, for each configured package:
       a. Merge top-level entry with per-version override
       b. Classify source (manifest / URL / directory / archive)
       c. Acquire (fetch cache or local path), skip when unchanged
       d. Publish atomically
    4. Purge stale directories of the kind
    5. Scenario presence checks

    Example:
        coordinator = InstallCoordinator(config)
        try:
            report = await coordinator.run()
        finally:
            await coordinator.close()
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        fetch_cache: Optional[FetchCache] = None,
        change_detector: Optional[ChangeDetector] = None,
        installer: Optional[AtomicInstaller] = None
    ):
        """
        Initialize install coordinator.

        Args:
            config: Optional ConfigLoader instance
            fetch_cache: Fetch cache (created from config if None)
            change_detector: Change detector (created from config if None)
            installer: Atomic installer (created from config if None)
        """
        self.config = config if config else ConfigLoader()
        self.dry_run = self.config.get('dry_run', False)

        self.resolver = ConfigResolver(self.config)
        self.fetch_cache = fetch_cache if fetch_cache else FetchCache(self.config)
        self.change_detector = change_detector if change_detector else ChangeDetector(self.config)
        self.installer = installer if installer else AtomicInstaller(self.config)
        self.manifest_resolver = ManifestResolver()
        self.reconciler = Reconciler(self.config)

    async def run(self, resolved: Optional[ResolvedConfiguration] = None) -> InstallReport:
        """
        Install every configured package of every kind.

        Args:
            resolved: Pre-resolved configuration (resolved from settings if None)

        Returns:
            InstallReport

        Raises:
            ConfigurationError: Document or version unusable (fatal)
        """
        if resolved is None:
            resolved = self.resolver.resolve()

        start_time = time.time()
        report = InstallReport(major_version=resolved.major_version, dry_run=self.dry_run)

        logger.info(
            f"{LOG_INPUT} Installing for major version {resolved.major_version}"
            f"{' ' + DRY_RUN_MARKER if self.dry_run else ''}"
        )

        self._ensure_directories([resolved.destination_root(kind) for kind in PACKAGE_KINDS])

        for kind in PACKAGE_KINDS:
            install_map = resolved.install_map(kind)
            if install_map is None:
                logger.info(f"{LOG_PROCESS} No {kind} entries for version {resolved.major_version}")
                continue

            for package_id, override in install_map.items():
                outcome = await self.install_package(resolved, kind, package_id, override)
                report.add(outcome)

            report.purged[kind] = self.reconciler.purge(
                resolved.destination_root(kind), kind, install_map.keys()
            )

            if kind == KIND_SCENARIO:
                report.presence_warnings.extend(self._check_presence(resolved, install_map))

        report.duration = time.time() - start_time

        logger.info(
            f"{LOG_OUTPUT} Run complete: {report.installed_count} installed, "
            f"{report.skipped_count} skipped, {report.failed_count} failed "
            f"in {report.duration:.2f}s"
        )

        return report

    async def install_package(
        self,
        resolved: ResolvedConfiguration,
        kind: str,
        package_id: str,
        override: Any
    ) -> InstallOutcome:
        """
        Install one package; never raises.

        Args:
            resolved: Active configuration
            kind: Package kind
            package_id: Package id
            override: Per-version entry (expected mapping)

        Returns:
            InstallOutcome
        """
        if not isinstance(override, dict):
            message = f"Invalid configuration for {kind} '{package_id}' (expected an object)"
            logger.warning(f"{LOG_OUTPUT} {message}")
            return InstallOutcome.failed(package_id, kind, message)

        try:
            entry = resolved.merged_entry(kind, package_id, override)
            package = PackageSpec(
                id=package_id,
                kind=kind,
                source=classify_source(package_id, entry),
                entry=entry,
            )
            destination = resolved.destination_root(kind) / package_id

            logger.info(
                f"{LOG_INPUT} {kind} '{package_id}' from {package.source.kind.value}: "
                f"{package.source.location}"
            )

            if package.source.kind == SourceKind.MANIFEST:
                return await self._install_from_manifest(package, destination)

            if package.source.kind == SourceKind.DIRECT_URL:
                return await self._install_from_url(package, package.source.location, destination)

            return await self._install_local(package, package.source.local_path, destination)

        except Exception as e:
            logger.warning(f"{LOG_OUTPUT} {kind} '{package_id}' failed: {e}")
            return InstallOutcome.failed(package_id, kind, str(e))

    # ========================================================================
    # ACQUISITION PATHS
    # ========================================================================

    async def _install_from_manifest(self, package: PackageSpec, destination: Path) -> InstallOutcome:
        manifest_url = package.source.location
        fetched = await self.fetch_cache.fetch(manifest_url)
        if not fetched.success:
            raise FetchError(
                f"Manifest fetch failed: {fetched.error_message}",
                url=manifest_url,
                status_code=fetched.status_code
            )

        if fetched.path is None:
            return InstallOutcome.installed(
                package.id, package.kind, destination,
                note=f"{DRY_RUN_MARKER} manifest not cached; download not resolved"
            )

        manifest = self.manifest_resolver.parse(fetched.path.read_bytes())
        download_url = self.manifest_resolver.resolve(manifest, base_url=manifest_url)

        return await self._install_from_url(package, download_url, destination)

    async def _install_from_url(self, package: PackageSpec, url: str, destination: Path) -> InstallOutcome:
        fetched = await self.fetch_cache.fetch(url)
        if not fetched.success:
            raise FetchError(
                f"Download failed: {fetched.error_message}",
                url=url,
                status_code=fetched.status_code
            )

        source_name = Path(urlparse(url).path).name

        if not is_archive_name(source_name):
            logger.info(f"{LOG_OUTPUT} '{package.id}' is not an archive; left in cache")
            return InstallOutcome.installed(
                package.id, package.kind,
                note=f"non-archive artifact left at {fetched.path}"
            )

        if fetched.path is None:
            return InstallOutcome.installed(
                package.id, package.kind, destination,
                note=f"{DRY_RUN_MARKER} downloaded but not cached"
            )

        return await self._install_checked(
            package, fetched.path, destination,
            lambda: self.installer.install_archive(fetched.path, destination, package.id, source_name)
        )

    async def _install_local(self, package: PackageSpec, source: Path, destination: Path) -> InstallOutcome:
        if package.source.kind == SourceKind.LOCAL_ARCHIVE:
            return await self._install_checked(
                package, source, destination,
                lambda: self.installer.install_archive(source, destination, package.id, source.name)
            )

        return await self._install_checked(
            package, source, destination,
            lambda: self.installer.install_directory(source, destination, package.id)
        )

    async def _install_checked(self, package: PackageSpec, source: Path, destination: Path, install) -> InstallOutcome:
        """
        Skip when unchanged and installed, otherwise run install().

        Args:
            package: Package being installed
            source: Local directory or archive file the content comes from
            destination: Final destination directory
            install: Zero-argument coroutine factory returning InstallResult
        """
        check = await asyncio.to_thread(self.change_detector.has_changed, source, destination)
        if not check.changed and destination.is_dir():
            logger.info(f"{LOG_OUTPUT} {package.kind} '{package.id}' unchanged; skipped")
            return InstallOutcome.skip(package.id, package.kind, destination)

        result: InstallResult = await install()

        if not result.success:
            self.change_detector.forget(source, destination)
            logger.warning(f"{LOG_OUTPUT} {package.kind} '{package.id}' failed: {result.error_message}")
            return InstallOutcome.failed(package.id, package.kind, result.error_message or 'install failed')

        note = DRY_RUN_MARKER if self.dry_run else None
        return InstallOutcome.installed(package.id, package.kind, destination, note=note)

    # ========================================================================
    # HOUSEKEEPING
    # ========================================================================

    def _ensure_directories(self, directories: list) -> None:
        """Create kind roots, tolerating concurrent creation."""
        for directory in directories:
            if self.dry_run:
                if not directory.is_dir():
                    logger.info(f"{LOG_PROCESS} {DRY_RUN_MARKER} Would create {directory}")
                continue
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                if not directory.is_dir():
                    logger.error(f"Failed to create directory {directory}: {e}")
                    continue
                logger.debug(f"{LOG_PROCESS} {directory} created concurrently")

    def _check_presence(self, resolved: ResolvedConfiguration, install_map: dict) -> list[str]:
        """
        Warn about scenarios flagged check_presence that are not on disk.

        Returns:
            Warning messages
        """
        warnings = []
        root = resolved.destination_root(KIND_SCENARIO)

        for package_id, override in install_map.items():
            if not isinstance(override, dict):
                continue
            base = resolved.packages.get(KIND_SCENARIO, {}).get(package_id)
            entry = {**(base if isinstance(base, dict) else {}), **override}
            if not entry.get(ENTRY_CHECK_PRESENCE):
                continue

            path = root / package_id
            if path.is_dir():
                continue

            if entry.get(ENTRY_INSTALL_AT_STARTUP) is False:
                message = f"Scenario '{package_id}' not found at {path} (install_at_startup=false)"
            else:
                message = f"Scenario '{package_id}' not found after install at {path}"

            logger.warning(message)
            warnings.append(message)

        return warnings

    async def close(self):
        """Cleanup resources."""
        logger.info("Closing install coordinator")
        await self.fetch_cache.close()


__all__ = ['InstallCoordinator']
