"""Main CLI entry point for source-deploy"""

import logging
import os
import sys

import click
from rich.logging import RichHandler

from ..__version__ import __version__
from ..constants import APP_NAME, ENV_LOG_LEVEL, LOG_FORMAT
from .context import Context
from .utils.output import console, err_console

# Import all commands
from .commands import (
    deploy,
    report,
)


def _env_log_level() -> int:
    """Level named by SOURCE_DEPLOY_LOG_LEVEL; WARNING when unset or unknown"""
    level = logging.getLevelName(os.environ.get(ENV_LOG_LEVEL, "WARNING").upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = _env_log_level()

    # Configure rich handler
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=err_console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ],
        force=True,
    )

    # Adjust third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiofiles").setLevel(logging.WARNING)


@click.group(name=APP_NAME)
@click.version_option(__version__, prog_name=APP_NAME)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-d', '--debug', is_flag=True, help='Enable debug output')
@click.option('-q', '--quiet', is_flag=True, help='Suppress all log output')
@click.option('--project-dir', type=click.Path(exists=True, file_okay=False),
              help='Project root (default: discovered from the current directory)')
@click.pass_context
def cli(ctx, verbose, debug, quiet, project_dir):
    """Source Deploy - deploy metadata source to an org

    Resolves local source into components, checks tracked changes for
    conflicts, submits the deploy and polls it until it finishes.
    """
    # Setup logging
    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_logging(verbose=verbose, debug=debug)

    # Create context with lazy initialization
    ctx.obj = Context()
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug
    ctx.obj.project_root = project_dir


# Register commands
cli.add_command(deploy.deploy)
cli.add_command(report.report)


def main():
    """Main entry point for the CLI application

    This function handles:
    - Keyboard interrupts
    - Unexpected exceptions with proper error display
    """
    try:
        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)

    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if '--debug' in sys.argv or '-d' in sys.argv:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
