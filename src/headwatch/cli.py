"""Command line interface for headwatch."""

import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import ConfigManager
from .services.project_launcher import ProjectLaunchError, RunConfig, launch_process
from .services.ref_resolver import find_repository_root, resolve_display_name
from .services.solution_session import SolutionSession
from .services.title_formatter import TitleFormatter

logger = logging.getLogger(__name__)
console = Console()


@click.group(invoke_without_command=True)
@click.option("--config", "-c", type=click.Path(exists=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="headwatch")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """Show and follow the current git branch of a project.

    \b
    EXAMPLES:
      headwatch branch                    # Current branch of this directory
      headwatch title "My Project"        # "main - My Project"
      headwatch watch ../other-project    # Print the title on every switch
      headwatch run ./bin/app --args "-x 1"
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Configure logging at WARNING level for clean CLI output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    config_manager = ConfigManager(Path(config) if config else None)
    try:
        ctx.obj["config"] = config_manager.load()
    except ValueError as e:
        console.print(f"❌ {escape(str(e))}", style="red")
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("path", required=False, default=".", type=click.Path(exists=True))
@click.pass_context
def branch(ctx, path: str):
    """Print the branch (or detached ref) checked out at PATH."""
    watch_config = ctx.obj["config"].watch

    git_dir = find_repository_root(path)
    if git_dir is None:
        console.print(f"❌ Not a git repository: {escape(path)}", style="red")
        sys.exit(1)

    display_name = resolve_display_name(
        git_dir,
        retries=watch_config.read_retries,
        retry_delay=watch_config.read_retry_delay,
    )
    if display_name is None:
        console.print(f"❌ Could not read {git_dir / 'HEAD'}", style="red")
        sys.exit(1)

    click.echo(display_name)


@cli.command()
@click.argument("title")
@click.option(
    "--path",
    "-p",
    default=".",
    type=click.Path(exists=True),
    help="Directory whose branch is added to the title",
)
@click.option("--placement", type=click.Choice(["front", "back"]), help="Branch position")
@click.option("--separator", type=click.Choice(["dash", "pipe"]), help="Separator style")
@click.pass_context
def title(ctx, title: str, path: str, placement: Optional[str], separator: Optional[str]):
    """Print TITLE decorated with the current branch name."""
    watch_config = ctx.obj["config"].watch
    formatter = TitleFormatter.from_config(
        ctx.obj["config"].title, placement=placement, separator=separator
    )

    git_dir = find_repository_root(path)
    branch_name = None
    if git_dir is not None:
        branch_name = resolve_display_name(
            git_dir,
            retries=watch_config.read_retries,
            retry_delay=watch_config.read_retry_delay,
        )

    click.echo(formatter.format(title, branch_name))


@cli.command()
@click.argument("path", required=False, default=".", type=click.Path(exists=True))
@click.option("--title", "window_title", default="", help="Title to decorate")
@click.option("--placement", type=click.Choice(["front", "back"]), help="Branch position")
@click.option("--separator", type=click.Choice(["dash", "pipe"]), help="Separator style")
@click.pass_context
def watch(
    ctx,
    path: str,
    window_title: str,
    placement: Optional[str],
    separator: Optional[str],
):
    """Follow branch switches at PATH, printing the title after each one.

    Runs until interrupted with Ctrl+C.
    """
    session = SolutionSession(
        title_sink=lambda text: console.print(escape(text)),
        original_title=window_title or Path(path).absolute().name,
        formatter=TitleFormatter.from_config(
            ctx.obj["config"].title, placement=placement, separator=separator
        ),
        config=ctx.obj["config"].watch,
    )

    # PATH/. stands in for a solution file inside PATH
    session.solution_opened(os.path.join(str(Path(path).absolute()), "."))
    if session.watcher is None:
        console.print(f"⚠️ No git repository found for {escape(path)}", style="yellow")
        session.dispose()
        sys.exit(1)

    console.print("👀 Watching for branch changes. Press Ctrl+C to stop.", style="blue")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n🛑 Watch mode stopped", style="yellow")
    finally:
        session.solution_closed()


@cli.command()
@click.argument("executable", type=click.Path())
@click.option("--args", "arguments", default="", help="Arguments for the executable")
@click.option("--cwd", "working_directory", type=click.Path(), help="Working directory")
def run(executable: str, arguments: str, working_directory: Optional[str]):
    """Start EXECUTABLE without waiting for it or attaching a debugger."""
    run_config = RunConfig(
        executable_path=executable,
        arguments=arguments,
        working_directory=working_directory or str(Path(executable).parent),
    )

    try:
        process = launch_process(run_config)
    except ProjectLaunchError as e:
        console.print(f"❌ Start without debugging: {escape(str(e))}", style="red")
        sys.exit(1)

    console.print(f"🚀 Started {escape(executable)} (pid {process.pid})", style="green")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
