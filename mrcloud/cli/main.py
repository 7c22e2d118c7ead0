"""
CLI entry point for MrCloud.

Provides command-line access to the cloud: folder listing, folder creation,
removal, moves and renames, chunked uploads and sharing.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click

from mrcloud._version import __version__
from mrcloud.cli.context import CLIContext, pass_context
from mrcloud.cloud import CloudSession
from mrcloud.commands import ShareCommand
from mrcloud.config.settings import get_default_config_path, load_config
from mrcloud.exceptions import InvalidConfigurationError, MrCloudError
from mrcloud.logging_config import set_correlation_id, setup_logging


def _run(ctx: CLIContext, action: Callable[[CloudSession], Awaitable[Any]]) -> Any:
    """Run ``action`` against a fresh session, exiting with status 1 on failure."""

    async def runner():
        set_correlation_id()
        async with ctx.open_session() as session:
            return await action(session)

    try:
        return asyncio.run(runner())
    except (MrCloudError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f'Path to configuration file (default: {get_default_config_path()})',
)
@click.option(
    '--log-level',
    '-l',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Set logging level (default: from configuration)',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output',
)
@click.version_option(version=__version__, prog_name='mrcloud')
@pass_context
def cli(ctx: CLIContext, config: Optional[Path], log_level: Optional[str], verbose: bool):
    """
    MrCloud - command-line client for Mail.ru Cloud.
    """
    ctx.verbose = verbose
    ctx.config_path = str(config) if config else None

    # Load configuration
    try:
        ctx.config = load_config(ctx.config_path)
    except InvalidConfigurationError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: Failed to load configuration: {e}", err=True)
        sys.exit(1)

    # Set up logging
    try:
        effective_log_level = log_level.upper() if log_level else ctx.config.logging.level
        log_file = Path(ctx.config.logging.file) if ctx.config.logging.file else None
        setup_logging(
            level=effective_log_level,
            log_file=log_file,
            json_format=ctx.config.logging.format == "json",
        )

        if verbose:
            logger = logging.getLogger("mrcloud")
            logger.info(f"Loaded configuration from: {ctx.config_path or 'defaults'}")
            logger.info(f"Log level: {effective_log_level}")
    except Exception as e:
        click.echo(f"Error: Failed to set up logging: {e}", err=True)
        sys.exit(1)


@cli.command('ls')
@click.argument('path', default='/')
@pass_context
def list_folder(ctx: CLIContext, path: str):
    """
    List the contents of a folder.

    Examples:

        mrcloud ls /

        mrcloud ls /Documents/reports
    """
    listing = _run(ctx, lambda session: session.list_folder(path))

    for item in listing.entries:
        if item.is_folder:
            click.echo(f"d {'':>12}  {item.name}")
        else:
            click.echo(f"- {item.size:>12}  {item.name}")
    click.echo(f"{listing.folders_count} folder(s), {listing.files_count} file(s)")


@cli.command('mkdir')
@click.argument('path')
@pass_context
def mkdir(ctx: CLIContext, path: str):
    """Create a folder."""
    created = _run(ctx, lambda session: session.create_folder(path))
    click.echo(created)


@cli.command('rm')
@click.argument('path')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@pass_context
def remove(ctx: CLIContext, path: str, yes: bool):
    """Remove a file or folder."""
    if not yes:
        click.confirm(f"Remove {path}?", abort=True)
    _run(ctx, lambda session: session.remove(path))
    click.echo(f"Removed {path}")


@cli.command('mv')
@click.argument('path')
@click.argument('folder')
@pass_context
def move(ctx: CLIContext, path: str, folder: str):
    """Move PATH into FOLDER."""
    new_path = _run(ctx, lambda session: session.move(path, folder))
    click.echo(new_path)


@cli.command('rename')
@click.argument('path')
@click.argument('new_name')
@pass_context
def rename(ctx: CLIContext, path: str, new_name: str):
    """Rename PATH to NEW_NAME in the same folder."""
    new_path = _run(ctx, lambda session: session.rename(path, new_name))
    click.echo(new_path)


@cli.command('upload')
@click.argument('local', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('remote')
@click.option(
    '--chunk-size',
    type=click.IntRange(min=1),
    default=None,
    help='Bytes per upload request (default: from configuration)',
)
@pass_context
def upload(ctx: CLIContext, local: Path, remote: str, chunk_size: Optional[int]):
    """
    Upload a local file.

    Examples:

        mrcloud upload report.pdf /Documents/report.pdf

        mrcloud upload video.mp4 /Video/video.mp4 --chunk-size 4194304
    """

    def progress(offset: int, size: int) -> None:
        if ctx.verbose:
            click.echo(f"  {offset}/{size} bytes", err=True)

    stored = _run(
        ctx,
        lambda session: session.upload_file(local, remote, chunk_size=chunk_size, on_progress=progress),
    )
    click.echo(f"Uploaded {local} to {stored}")


@cli.command('share')
@click.argument('path')
@click.argument('param', required=False)
@pass_context
def share(ctx: CLIContext, path: str, param: Optional[str]):
    """
    Publish an item and print its public link.

    PARAM, if given, names the item relative to PATH, or absolutely when it
    starts with '/'.
    """
    params = [param] if param else []
    result = _run(ctx, lambda session: ShareCommand(session, path, params).execute())

    if not result.success:
        click.echo(f"Error: {result.message or 'share failed'}", err=True)
        sys.exit(1)
    click.echo(result.message)


if __name__ == '__main__':
    cli()
