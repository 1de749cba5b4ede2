# Path: content_installer/core/config_loader.py
"""
Installer Configuration Loader

Operating settings for the content installer (paths, modes, retry and
timeout tuning). Loads environment variables with type conversion and
sensible defaults.

This is NOT the JSON configuration document that lists packages - that
one is read by engine/config_resolver.py.

Architecture:
- Explicit instance passed to every component (no global lookup)
- Environment mapping injectable for tests and embedding
- Keyword overrides win over environment values
- .env file loaded through python-dotenv when reading os.environ
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from content_installer.constants import (
    ENV_VERSION,
    ENV_FALLBACK_MAJOR_VERSION,
    ENV_DATA_DIR,
    ENV_CONFIG_PATH,
    ENV_CACHE_DIR,
    ENV_CONTAINER_CACHE,
    ENV_DRY_RUN,
    ENV_DEBUG,
    ENV_CACHE_MODE,
    ENV_CACHE_BUST,
    ENV_FORCE_BUILTIN_EXTRACT,
    ENV_CHECKSUM_MODE,
    ENV_CHECKSUM_THRESHOLD_BYTES,
    ENV_DIR_MAX_FILES,
    ENV_RETRY_ATTEMPTS,
    ENV_RETRY_DELAY,
    ENV_MAX_RETRY_DELAY,
    ENV_RETRY_JITTER,
    ENV_REQUEST_TIMEOUT,
    ENV_CONNECT_TIMEOUT,
    ENV_MAX_REDIRECTS,
    ENV_CHUNK_SIZE,
    ENV_PRESERVE,
    ENV_LOG_LEVEL,
    ENV_LOG_CONSOLE,
    ENV_LOG_DIR,
    TRUTHY_VALUES,
    CACHE_MODES,
    CACHE_MODE_BUST,
    CACHE_MODE_REVALIDATE,
    CHECKSUM_MODES,
    CHECKSUM_MODE_AUTO,
    DEFAULT_FALLBACK_MAJOR_VERSION,
    DEFAULT_DATA_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_CACHE_DIR,
    DEFAULT_CHECKSUM_THRESHOLD_BYTES,
    DEFAULT_DIR_MAX_FILES,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RETRY_JITTER,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_CHUNK_SIZE,
)


class ConfigLoader:
    """
    Operating settings loader.

    Example:
        config = ConfigLoader()
        cache_dir = config.get('cache_dir')

        # Tests: isolated environment plus overrides
        config = ConfigLoader(env={}, dry_run=True, cache_dir=tmp_path)
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, **overrides: Any):
        """
        Initialize configuration loader.

        Args:
            env: Environment mapping; os.environ (plus .env) when None
            **overrides: Configuration keys that replace loaded values
        """
        if env is None:
            dotenv_path = find_dotenv(usecwd=True)
            if dotenv_path:
                load_dotenv(dotenv_path=dotenv_path, interpolate=True)
            env = os.environ

        self._env = env
        self._config = self._load_configuration()

        for key, value in overrides.items():
            if key not in self._config:
                raise ValueError(f"Unknown configuration key: {key}")
            if isinstance(self._config[key], Path) and value is not None:
                value = Path(value)
            self._config[key] = value

        self._validate()

    def _load_configuration(self) -> dict[str, Any]:
        """
        Load all configuration from the environment mapping.

        Returns:
            Dictionary of configuration values
        """
        fallback_major = self._get_env(ENV_FALLBACK_MAJOR_VERSION, DEFAULT_FALLBACK_MAJOR_VERSION)

        cache_mode = self._get_env(ENV_CACHE_MODE)
        if not cache_mode:
            cache_mode = CACHE_MODE_BUST if self._get_bool(ENV_CACHE_BUST, False) \
                else CACHE_MODE_REVALIDATE

        cache_dir = self._get_path(ENV_CACHE_DIR) or self._get_path(ENV_CONTAINER_CACHE) \
            or Path(DEFAULT_CACHE_DIR)

        config = {
            # ================================================================
            # VERSION SELECTION
            # ================================================================
            'version': self._get_env(ENV_VERSION) or self._get_env(ENV_FALLBACK_MAJOR_VERSION) or 'latest',
            'fallback_major_version': fallback_major,

            # ================================================================
            # LOCATIONS
            # ================================================================
            'data_dir': self._get_path(ENV_DATA_DIR) or Path(DEFAULT_DATA_DIR),
            'config_path': self._get_path(ENV_CONFIG_PATH) or Path(DEFAULT_CONFIG_PATH),
            'cache_dir': cache_dir,

            # ================================================================
            # OPERATING MODES
            # ================================================================
            'dry_run': self._get_bool(ENV_DRY_RUN, False),
            'debug': self._get_bool(ENV_DEBUG, False),
            'cache_mode': cache_mode.strip().lower(),
            'force_builtin_extract': self._get_bool(ENV_FORCE_BUILTIN_EXTRACT, False),

            # ================================================================
            # CHANGE DETECTION
            # ================================================================
            'checksum_mode': self._get_env(ENV_CHECKSUM_MODE, CHECKSUM_MODE_AUTO).lower(),
            'checksum_threshold_bytes': self._get_int(ENV_CHECKSUM_THRESHOLD_BYTES, DEFAULT_CHECKSUM_THRESHOLD_BYTES),
            'dir_max_files': self._get_int(ENV_DIR_MAX_FILES, DEFAULT_DIR_MAX_FILES),

            # ================================================================
            # FETCH CONFIGURATION
            # ================================================================
            'retry_attempts': self._get_int(ENV_RETRY_ATTEMPTS, DEFAULT_RETRY_ATTEMPTS),
            'retry_delay': self._get_float(ENV_RETRY_DELAY, DEFAULT_RETRY_DELAY),
            'max_retry_delay': self._get_float(ENV_MAX_RETRY_DELAY, DEFAULT_MAX_RETRY_DELAY),
            'retry_jitter': self._get_float(ENV_RETRY_JITTER, DEFAULT_RETRY_JITTER),
            'request_timeout': self._get_int(ENV_REQUEST_TIMEOUT, DEFAULT_TIMEOUT),
            'connect_timeout': self._get_int(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
            'max_redirects': self._get_int(ENV_MAX_REDIRECTS, DEFAULT_MAX_REDIRECTS),
            'chunk_size': self._get_int(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),

            # ================================================================
            # RECONCILIATION
            # ================================================================
            'extra_preserved_names': self._get_list(ENV_PRESERVE),

            # ================================================================
            # LOGGING CONFIGURATION
            # ================================================================
            'log_level': self._get_env(ENV_LOG_LEVEL, 'INFO'),
            'log_console': self._get_bool(ENV_LOG_CONSOLE, True),
            'log_dir': self._get_path(ENV_LOG_DIR),
        }

        return config

    def _validate(self) -> None:
        """
        Reject values that would silently change behaviour.

        Raises:
            ValueError: If a mode is not one of the known values
        """
        if self._config['cache_mode'] not in CACHE_MODES:
            raise ValueError(
                f"Invalid cache mode '{self._config['cache_mode']}' "
                f"(expected one of: {', '.join(CACHE_MODES)})"
            )
        if self._config['checksum_mode'] not in CHECKSUM_MODES:
            raise ValueError(
                f"Invalid checksum mode '{self._config['checksum_mode']}' "
                f"(expected one of: {', '.join(CHECKSUM_MODES)})"
            )
        if self._config['retry_attempts'] < 1:
            self._config['retry_attempts'] = 1

    def _get_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get string environment variable.

        Args:
            key: Environment variable name
            default: Default value if not found or blank

        Returns:
            Stripped value or default
        """
        value = self._env.get(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    def _get_bool(self, key: str, default: bool) -> bool:
        """Get boolean environment variable (1/true/yes/on)."""
        value = self._env.get(key)
        if value is None:
            return default
        return value.strip().lower() in TRUTHY_VALUES

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable, default when invalid."""
        value = self._env.get(key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            return default

    def _get_float(self, key: str, default: float) -> float:
        """Get float environment variable, default when invalid."""
        value = self._env.get(key)
        if value is None:
            return default
        try:
            return float(value.strip())
        except ValueError:
            return default

    def _get_path(self, key: str) -> Optional[Path]:
        value = self._get_env(key)
        return Path(value) if value else None

    def _get_list(self, key: str) -> list[str]:
        value = self._get_env(key)
        if not value:
            return []
        return [item.strip() for item in value.split(',') if item.strip()]

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to configuration."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config

    def keys(self):
        """Get all configuration keys."""
        return self._config.keys()

    def items(self):
        """Get all configuration key-value pairs."""
        return self._config.items()


__all__ = ['ConfigLoader']
