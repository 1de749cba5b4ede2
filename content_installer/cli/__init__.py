# Path: content_installer/cli/__init__.py
"""
Installer CLI Module

Command-line entry point for a non-interactive install run.
"""

from content_installer.cli.install_cli import InstallCLI, main

__all__ = ['InstallCLI', 'main']
