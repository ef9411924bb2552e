"""Command line interface for git-content-server.

Provides server startup and configuration commands, plus a read-only
``show`` command that prints a file as of HEAD.
"""

import json
import os
import sys
from dataclasses import asdict
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .server.utils.config_manager import ContentServerConfig, ContentServerConfigManager

console = Console()


def _load_config(config_dir: Optional[str]) -> ContentServerConfig:
    """Load the effective configuration.

    Raises:
        click.ClickException: If the config file is malformed or invalid
    """
    manager = ContentServerConfigManager(config_dir)
    try:
        return manager.load_or_create()
    except ValueError as e:
        raise click.ClickException(str(e))


config_dir_option = click.option(
    "--config-dir",
    envvar="GIT_CONTENT_SERVER_DATA_DIR",
    type=click.Path(file_okay=False),
    help="Server directory holding config.json (default: ~/.git-content-server)",
)


@click.group()
@click.version_option(__version__, prog_name="git-content-server")
def cli():
    """Edit files in a git working tree over HTTP."""
    pass


@cli.command("serve")
@config_dir_option
@click.option("--host", default=None, help="Bind host (overrides config)")
@click.option("--port", type=int, default=None, help="Bind port (overrides config)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(config_dir: Optional[str], host: Optional[str], port: Optional[int], reload: bool):
    """Run the content server."""
    import uvicorn

    from .server.logging_utils import configure_logging

    config = _load_config(config_dir)
    configure_logging(config.log_level)

    if config_dir:
        # The app factory re-reads configuration from this directory
        os.environ["GIT_CONTENT_SERVER_DATA_DIR"] = config_dir

    console.print(
        f"[bold]Serving[/bold] {config.content_root} "
        f"on http://{host or config.host}:{port or config.port}"
    )
    uvicorn.run(
        "git_content_server.server.app:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


@cli.command("init-config")
@config_dir_option
@click.option("--repo-path", type=click.Path(file_okay=False), help="Git working tree root")
@click.option("--content-path", default="", help="Content subdirectory relative to the repo")
@click.option("--force", is_flag=True, help="Overwrite an existing config.json")
def init_config(
    config_dir: Optional[str], repo_path: Optional[str], content_path: str, force: bool
):
    """Write a default config.json."""
    manager = ContentServerConfigManager(config_dir)
    if manager.config_file_path.exists() and not force:
        raise click.ClickException(
            f"{manager.config_file_path} already exists (use --force to overwrite)"
        )

    config = ContentServerConfig(
        repo_path=os.path.abspath(repo_path) if repo_path else "",
        content_path=content_path,
    )
    try:
        manager.validate_config(config)
    except ValueError as e:
        raise click.ClickException(str(e))

    manager.save_config(config)
    console.print(f"[green]Wrote {manager.config_file_path}[/green]")


@cli.command("show-config")
@config_dir_option
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def show_config(config_dir: Optional[str], json_output: bool):
    """Print the effective configuration."""
    config = _load_config(config_dir)
    config_dict = asdict(config)
    config_dict["content_root"] = str(config.content_root)
    config_dict["tmp_dir"] = str(config.tmp_dir)

    if json_output:
        click.echo(json.dumps(config_dict, indent=2))
        return

    table = Table(title="git-content-server configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in config_dict.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@cli.command("show")
@config_dir_option
@click.argument("path")
def show(config_dir: Optional[str], path: str):
    """Print PATH (relative to the content root) as of the last commit."""
    from .server.services.content_service import GitContentService
    from .server.services.exceptions import ContentNotFoundError, ContentOperationError

    config = _load_config(config_dir)
    service = GitContentService(config)
    try:
        content = service.show(path)
    except ContentNotFoundError as e:
        console.print(f"[red]Not found: {e}[/red]")
        sys.exit(1)
    except ContentOperationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    click.echo(content, nl=False)


if __name__ == "__main__":
    cli()
