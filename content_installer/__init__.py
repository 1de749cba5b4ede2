# Path: content_installer/__init__.py
"""
Content Installer

Installs engines, extensions and scenarios into a data directory from
manifests, archive URLs, local directories and local archives.

Entry points:
- content_installer.install (python -m content_installer.install)
- content_installer.engine.InstallCoordinator for embedding
"""

__version__ = '1.0.0'

__all__ = ['__version__']
