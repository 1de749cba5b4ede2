# Path: content_installer/cli/install_cli.py
"""
Install CLI Interface

Non-interactive command-line entry point for one install run.

Architecture:
- argparse flags override environment settings (ConfigLoader)
- Logging configured once from the resulting settings
- InstallCoordinator runs under asyncio.run
- ConfigurationError -> its exit code; package failures keep exit 0
- rich summary table of every package outcome

Usage:
    content-installer --config /config/container-config.json --dry-run
    python -m content_installer.install --version 13.307
"""

import argparse
import asyncio
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from content_installer import __version__
from content_installer.core.logger import get_logger, configure_logging
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import ConfigurationError
from content_installer.engine.coordinator import InstallCoordinator
from content_installer.engine.result import InstallReport
from content_installer.constants import (
    CACHE_MODES,
    STATUS_INSTALLED,
    STATUS_SKIPPED,
    STATUS_FAILED,
    EXIT_OK,
    EXIT_UNEXPECTED,
    EXIT_CONFIG_UNREADABLE,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'cli')

console = Console()

STATUS_STYLES = {
    STATUS_INSTALLED: 'green',
    STATUS_SKIPPED: 'cyan',
    STATUS_FAILED: 'red',
}

EXIT_INTERRUPTED = 130


class InstallCLI:
    """
    Runs the coordinator and renders the report.

    Example:
        cli = InstallCLI(config)
        exit_code = await cli.run()
    """

    def __init__(self, config: ConfigLoader, coordinator: Optional[InstallCoordinator] = None):
        """
        Initialize install CLI.

        Args:
            config: Operating settings
            coordinator: Coordinator (created from config if None)
        """
        self.config = config
        self.coordinator = coordinator if coordinator else InstallCoordinator(config)

    async def run(self) -> int:
        """
        Execute one install run.

        Returns:
            Process exit code
        """
        logger.info(f"{LOG_INPUT} Starting install (config={self.config.get('config_path')})")

        try:
            report = await self.coordinator.run()
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            console.print(f"[red bold]Configuration error:[/red bold] {e}")
            return e.exit_code
        finally:
            await self.coordinator.close()

        self.display_report(report)
        logger.info(f"{LOG_OUTPUT} Install finished: {report.to_dict()['outcomes']}")
        return EXIT_OK

    def display_report(self, report: InstallReport) -> None:
        """Print outcomes, purges and warnings."""
        title = f"Install Summary (major version {report.major_version})"
        if report.dry_run:
            title += " [dry-run]"

        table = Table(title=title, show_header=True)
        table.add_column("Kind", style="bold")
        table.add_column("Package")
        table.add_column("Status")
        table.add_column("Detail")

        for outcome in report.all_outcomes():
            style = STATUS_STYLES.get(outcome.status, 'white')
            table.add_row(
                outcome.kind,
                outcome.package_id,
                f"[{style}]{outcome.status}[/{style}]",
                outcome.error or outcome.note or '',
            )

        console.print(table)

        for kind, names in report.purged.items():
            if names:
                console.print(f"[yellow]Purged {kind}s:[/yellow] {', '.join(names)}")

        for warning in report.presence_warnings:
            console.print(f"[yellow]Warning:[/yellow] {warning}")

        console.print(
            f"Installed: [green]{report.installed_count}[/green]  "
            f"Skipped: [cyan]{report.skipped_count}[/cyan]  "
            f"Failed: [red]{report.failed_count}[/red]  "
            f"({report.duration:.2f}s)"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Install engines, extensions and scenarios from the configuration document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Install for the configured version
  content-installer

  # Show what would change without touching anything
  content-installer --dry-run

  # Pin a version and force fresh downloads
  content-installer --version 13.307 --cache-mode bust
        """
    )

    parser.add_argument('--app-version', action='version', version=f'Content Installer {__version__}')
    parser.add_argument('--config', dest='config_path', help='Configuration document (JSON)')
    parser.add_argument('--data-dir', dest='data_dir', help='Root of the installed tree')
    parser.add_argument('--cache-dir', dest='cache_dir', help='Fetch cache directory')
    parser.add_argument('--version', dest='version', help="Requested version, e.g. 13.307 or 'latest'")
    parser.add_argument('--cache-mode', dest='cache_mode', choices=CACHE_MODES, help='revalidate or bust')
    parser.add_argument('--dry-run', dest='dry_run', action='store_true', default=None,
                        help='Log intended changes without writing anything')
    parser.add_argument('--debug', dest='debug', action='store_true', default=None,
                        help='Verbose logging')
    parser.add_argument('--force-builtin-extract', dest='force_builtin_extract', action='store_true',
                        default=None, help='Use the built-in tar decoder even when tar is installed')

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}

    try:
        config = ConfigLoader(**overrides)
    except ValueError as e:
        console.print(f"[red bold]Invalid settings:[/red bold] {e}")
        return EXIT_CONFIG_UNREADABLE

    configure_logging(config)

    try:
        return asyncio.run(InstallCLI(config).run())

    except KeyboardInterrupt:
        console.print("\n[yellow]Install interrupted by user[/yellow]")
        return EXIT_INTERRUPTED

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"\n[red bold]Error:[/red bold] {e}")
        return EXIT_UNEXPECTED


__all__ = ['InstallCLI', 'main', 'build_parser']
