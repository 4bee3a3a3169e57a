"""CLI entry point."""

import os
import sys
import functools
import click
import logging
from typing import Optional
from click import Context

from ...changeset.editor import SubprocessEditorLauncher
from ...config.models import Environment
from ...errors import StackError, error_chain
from ...git import RealRepository
from ...github import create_github_client
from ...stack import StackPushPipeline

# Get module logger
logger = logging.getLogger(__name__)

def check(err: StackError) -> None:
    """Log an error with its causes and exit."""
    messages = error_chain(err)
    logger.error(messages[0])
    for cause in messages[1:]:
        logger.error(f"  caused by: {cause}")
    sys.exit(1)

def create_pipeline(environment: Environment, directory: str) -> StackPushPipeline:
    """Wire the pipeline to real git, editor and GitHub."""
    return StackPushPipeline(
        environment,
        open_repository=RealRepository.discover,
        editor_launcher=SubprocessEditorLauncher(),
        service_factory=functools.partial(create_github_client, environment),
        directory=directory,
    )

@click.group(invoke_without_command=True)
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if stack was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.version_option(package_name="pystack-up")
@click.pass_context
def cli(ctx: Context, directory: Optional[str], verbose: int) -> None:
    """Create stacked pull requests."""
    from ... import setup_logging
    setup_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj['directory'] = directory or "."
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(2)

@cli.command(name="up", help="Uploads a commit in the stack.")
@click.pass_context
def up(ctx: Context) -> None:
    """Up command."""
    environment = Environment.from_environ(os.environ)
    pipeline = create_pipeline(environment, ctx.obj['directory'])
    try:
        pr = pipeline.run()
    except StackError as e:
        check(e)
        return
    click.echo(pr.url)

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
