# Path: content_installer/engine/reconciler.py
"""
Reconciler

Purges installed package directories that are no longer configured.

Architecture:
- Runs per kind, strictly after every install of that kind
- Keeps every configured id (installed, skipped or failed this run)
- Keeps the per-kind preserve list plus extra preserved names from settings
- Leftover '.staging-*' directories from interrupted runs are removed too
- Missing root tolerated; dry-run only logs
"""

import shutil
from pathlib import Path
from typing import Iterable, Optional

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.constants import (
    PRESERVED_NAMES,
    LOG_PROCESS,
    LOG_OUTPUT,
    DRY_RUN_MARKER,
)

logger = get_logger(__name__, 'engine')


class Reconciler:
    """
    Removes stale package directories.

    Example:
        reconciler = Reconciler(config)
        removed = reconciler.purge(Path('/data/Data/scenarios'), 'scenario', {'a', 'b'})
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        self.config = config if config else ConfigLoader()
        self.dry_run = self.config.get('dry_run', False)
        self.extra_preserved = frozenset(self.config.get('extra_preserved_names') or [])

    def preserved_names(self, kind: str) -> frozenset:
        return PRESERVED_NAMES.get(kind, frozenset()) | self.extra_preserved

    def purge(self, root: Path, kind: str, keep: Iterable[str]) -> list[str]:
        """
        Remove subdirectories of root not in keep or the preserve list.

        Args:
            root: Destination root for one kind
            kind: Package kind
            keep: Configured ids for this kind

        Returns:
            Sorted names removed (or that would be removed in dry-run)
        """
        root = Path(root)
        if not root.is_dir():
            logger.debug(f"{LOG_PROCESS} Nothing to purge, {root} does not exist")
            return []

        expected = set(keep) | self.preserved_names(kind)
        stale = sorted(
            entry.name for entry in root.iterdir()
            if entry.is_dir() and not entry.is_symlink() and entry.name not in expected
        )

        removed = []
        for name in stale:
            target = root / name
            if self.dry_run:
                logger.info(f"{LOG_OUTPUT} {DRY_RUN_MARKER} Would purge {kind} '{name}'")
                removed.append(name)
                continue
            try:
                shutil.rmtree(target)
            except OSError as e:
                logger.warning(f"Cannot purge {kind} '{name}': {e}")
                continue
            logger.info(f"{LOG_OUTPUT} Purged {kind} '{name}'")
            removed.append(name)

        return removed


__all__ = ['Reconciler']
