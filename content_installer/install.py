# Path: content_installer/install.py
"""
Content Installer - Main Entry Point

Runs one install run for the configured version.

Usage:
    python -m content_installer.install [--dry-run] [--version 13]
"""

import sys

from content_installer.cli.install_cli import main


if __name__ == '__main__':
    sys.exit(main())
