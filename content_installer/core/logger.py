# Path: content_installer/core/logger.py
"""
Installer Module Logger

Centralized logging configuration for the content installer.

Architecture:
- Component-based logging (core, engine, cli, extraction)
- File and console output
- Configurable log levels, debug mode forces DEBUG
- IPO (Input-Process-Output) structured logging
"""

import logging
from typing import Optional

from content_installer.core.config_loader import ConfigLoader
from content_installer.constants import (
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_ACTIVITY,
    LOG_FILE_FETCH,
    LOG_FILE_ERRORS,
    LOGGER_ROOT,
    LOGGER_CORE,
    LOGGER_ENGINE,
    LOGGER_CLI,
    LOGGER_EXTRACTION,
)

_COMPONENT_LOGGERS = {
    'core': LOGGER_CORE,
    'engine': LOGGER_ENGINE,
    'cli': LOGGER_CLI,
    'extraction': LOGGER_EXTRACTION,
}


class InstallerLogger:
    """
    Centralized logger for the installer.

    Provides component-specific loggers with unified configuration.

    Example:
        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Installing extension 'dice-roller'")
        logger.info("[PROCESS] Extracting archive to staging")
        logger.info("[OUTPUT] Installed 'dice-roller'")
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize installer logger.

        Args:
            config: Optional ConfigLoader; console-only INFO logging when None
        """
        self.config = config
        self._configured = False

    def configure(self) -> None:
        """Configure logging system for the installer."""
        if self._configured:
            return

        if self.config is not None:
            log_dir = self.config.get('log_dir')
            log_level = 'DEBUG' if self.config.get('debug') else self.config.get('log_level', 'INFO')
            console_output = self.config.get('log_console', True)
        else:
            log_dir = None
            log_level = 'INFO'
            console_output = True

        level = getattr(logging, str(log_level).upper(), logging.INFO)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        logger = logging.getLogger(LOGGER_ROOT)
        logger.setLevel(level)
        logger.handlers.clear()

        engine_logger = logging.getLogger(LOGGER_ENGINE)
        engine_logger.handlers.clear()

        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_dir / LOG_FILE_ACTIVITY)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            # Fetch/engine detail always at DEBUG
            fetch_handler = logging.FileHandler(log_dir / LOG_FILE_FETCH)
            fetch_handler.setLevel(logging.DEBUG)
            fetch_handler.setFormatter(formatter)
            engine_logger.setLevel(logging.DEBUG)
            engine_logger.addHandler(fetch_handler)

            error_handler = logging.FileHandler(log_dir / LOG_FILE_ERRORS)
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(formatter)
            logger.addHandler(error_handler)

        if console_output:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        self._configured = True

    def get_logger(self, name: str, component: str = 'core') -> logging.Logger:
        """
        Get logger for specific component.

        Args:
            name: Module name (typically __name__)
            component: Component type ('core', 'engine', 'cli', 'extraction')

        Returns:
            Logger instance
        """
        if not self._configured:
            self.configure()

        prefix = _COMPONENT_LOGGERS.get(component, LOGGER_ROOT)
        return logging.getLogger(f"{prefix}.{name}")


# Process-wide logger setup; logging handlers are global by nature
_installer_logger = InstallerLogger()


def get_logger(name: str, component: str = 'core') -> logging.Logger:
    """
    Get logger for an installer component.

    Args:
        name: Module name (typically __name__)
        component: Component type ('core', 'engine', 'cli', 'extraction')

    Returns:
        Logger instance

    Example:
        from content_installer.core.logger import get_logger

        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Fetching manifest")
    """
    return _installer_logger.get_logger(name, component)


def configure_logging(config: Optional[ConfigLoader] = None) -> None:
    """
    Configure (or reconfigure) installer logging.

    Call this once at process start, after operating settings are known.

    Args:
        config: Optional ConfigLoader instance
    """
    global _installer_logger

    _installer_logger = InstallerLogger(config)
    _installer_logger.configure()


__all__ = ['get_logger', 'configure_logging', 'InstallerLogger']
