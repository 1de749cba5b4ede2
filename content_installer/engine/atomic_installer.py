# Path: content_installer/engine/atomic_installer.py
"""
Atomic Installer

Publishes package content into its destination without ever leaving a
half-written destination behind.

Architecture:
- Copy into '.staging-<id>-<ms>' beside the destination
- Best available copy: rsync -a --delete, cp -a, in-process copytree
- Publish: remove old destination, rename staging into place
- Staging removed in every outcome
- Archives: extract to '.staging-extract-<id>-<ms>' in the cache dir,
  unwrap a single top-level directory, then publish as a directory
- Dry-run reports success without touching the filesystem
"""

import asyncio
import os
import shutil
import time
from pathlib import Path
from typing import Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import FilesystemError
from content_installer.engine.result import InstallResult
from content_installer.engine.extraction.archive_handler import ArchiveHandler
from content_installer.constants import (
    STAGING_PREFIX,
    STAGING_EXTRACT_PREFIX,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
    DRY_RUN_MARKER,
)
from content_installer.engine.constants import (
    COPY_METHOD_RSYNC,
    COPY_METHOD_CP,
    COPY_METHOD_PYTHON,
)

logger = get_logger(__name__, 'engine')


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def unwrap_single_root(directory: Path) -> Path:
    """
    Root-folder unwrap.

    Args:
        directory: Freshly extracted tree

    Returns:
        The only child when it is a directory and there are no top-level
        files, otherwise directory itself
    """
    entries = list(Path(directory).iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        logger.info(f"{LOG_PROCESS} Unwrapping single top-level folder '{entries[0].name}'")
        return entries[0]
    return Path(directory)


class AtomicInstaller:
    """
    Stage-then-rename directory publisher.

    Example:
        installer = AtomicInstaller(config)
        result = await installer.install_directory(
            Path('/srv/packages/sys1'),
            Path('/data/Data/engines/sys1'),
            package_id='sys1',
        )
    """

    def __init__(self, config: Optional[ConfigLoader] = None, archive_handler: Optional[ArchiveHandler] = None):
        """
        Initialize atomic installer.

        Args:
            config: Optional ConfigLoader instance
            archive_handler: Extractor for archive installs (created if None)
        """
        self.config = config if config else ConfigLoader()
        self.dry_run = self.config.get('dry_run', False)
        self.cache_dir = Path(self.config.get('cache_dir'))
        self.archive_handler = archive_handler if archive_handler else ArchiveHandler(self.config)

    async def install_directory(
        self,
        source_dir: Path,
        destination: Path,
        package_id: Optional[str] = None
    ) -> InstallResult:
        """
        Copy source_dir to destination atomically.

        Args:
            source_dir: Directory whose contents are installed
            destination: Final destination directory
            package_id: Used in the staging directory name

        Returns:
            InstallResult; on failure destination is left untouched
        """
        source_dir = Path(source_dir)
        destination = Path(destination)
        package_id = package_id or destination.name

        logger.info(f"{LOG_INPUT} Install {source_dir} -> {destination}")

        if self.dry_run:
            logger.info(f"{LOG_OUTPUT} {DRY_RUN_MARKER} Would install {package_id} to {destination}")
            return InstallResult(success=True, destination=destination)

        staging = destination.parent / f"{STAGING_PREFIX}{package_id}-{_timestamp_ms()}"
        result = InstallResult(success=False, destination=destination, staging_directory=staging)

        try:
            if not source_dir.is_dir():
                raise FilesystemError(f"Source directory not found: {source_dir}")

            destination.parent.mkdir(parents=True, exist_ok=True)
            staging.mkdir()

            result.copy_method = await self._copy_tree(source_dir, staging)
            self._publish(staging, destination)

            result.success = True
            logger.info(f"{LOG_OUTPUT} Installed {package_id} ({result.copy_method})")

        except (FilesystemError, OSError, shutil.Error) as e:
            result.error_message = f"Install of {package_id} failed: {e}"
            logger.error(f"{LOG_OUTPUT} {result.error_message}")

        finally:
            self._remove_tree(staging)

        return result

    async def install_archive(
        self,
        archive_path: Path,
        destination: Path,
        package_id: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> InstallResult:
        """
        Extract archive privately, unwrap, then install as a directory.

        Args:
            archive_path: Archive file on disk
            destination: Final destination directory
            package_id: Used in staging names
            source_name: Original archive name for format detection

        Returns:
            InstallResult; extraction failure leaves destination untouched
        """
        package_id = package_id or Path(destination).name

        if self.dry_run:
            logger.info(
                f"{LOG_OUTPUT} {DRY_RUN_MARKER} Would extract {source_name or archive_path} "
                f"and install {package_id} to {destination}"
            )
            return InstallResult(success=True, destination=Path(destination))

        extract_dir = self.cache_dir / f"{STAGING_EXTRACT_PREFIX}{package_id}-{_timestamp_ms()}"

        try:
            extraction = await self.archive_handler.extract(archive_path, extract_dir, source_name)
            if not extraction.success:
                return InstallResult(
                    success=False,
                    destination=Path(destination),
                    error_message=f"Extraction of {package_id} failed: {extraction.error_message}"
                )

            return await self.install_directory(unwrap_single_root(extract_dir), destination, package_id)

        finally:
            self._remove_tree(extract_dir)

    async def _copy_tree(self, source_dir: Path, staging: Path) -> str:
        """
        Copy source_dir contents into the (existing, empty) staging dir.

        Returns:
            Copy method used

        Raises:
            FilesystemError: External copy tool failed
        """
        rsync = shutil.which('rsync')
        if rsync:
            await self._run(rsync, '-a', '--delete', f"{source_dir}{os.sep}", f"{staging}{os.sep}")
            return COPY_METHOD_RSYNC

        cp = shutil.which('cp')
        if cp:
            await self._run(cp, '-a', f"{source_dir}{os.sep}.", f"{staging}{os.sep}")
            return COPY_METHOD_CP

        await asyncio.to_thread(
            shutil.copytree, source_dir, staging, symlinks=True, dirs_exist_ok=True
        )
        return COPY_METHOD_PYTHON

    async def _run(self, *args: str) -> None:
        logger.debug(f"{LOG_PROCESS} Running {' '.join(args)}")

        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise FilesystemError(
                f"{Path(args[0]).name} exited with status {process.returncode}: {message}"
            )

    def _publish(self, staging: Path, destination: Path) -> None:
        """Replace destination with staging."""
        if destination.is_symlink() or destination.is_file():
            destination.unlink()
        elif destination.exists():
            shutil.rmtree(destination)

        os.replace(staging, destination)
        logger.debug(f"{LOG_PROCESS} Renamed {staging.name} -> {destination.name}")

    def _remove_tree(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning(f"Cannot remove staging directory {path}: {e}")


__all__ = ['AtomicInstaller', 'unwrap_single_root']
