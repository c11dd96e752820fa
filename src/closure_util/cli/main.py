"""Click CLI group: serve, build, and deps commands."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import click
from pydantic import ValidationError

from closure_util.build import build as run_build
from closure_util.build import load_manager
from closure_util.config import Settings, load_settings
from closure_util.errors import ClosureUtilError
from closure_util.logging import bind_context, configure_logging
from closure_util.project import ProjectConfig, load_project

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
_config_argument = click.argument(
    "config", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)


def _project(config: Path) -> ProjectConfig:
    try:
        return load_project(config)
    except ClosureUtilError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "-l",
    "--loglevel",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: CLOSURE_LOG_LEVEL or INFO).",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: str | None) -> None:
    """Closure Library dependency tools."""
    overrides: dict[str, object] = {}
    if loglevel:
        overrides["log_level"] = loglevel
    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        raise click.ClickException(f"invalid settings: {exc}") from exc
    configure_logging(settings.log_level, json_output=settings.log_json)
    if ctx.invoked_subcommand:
        bind_context(command=ctx.invoked_subcommand)
    ctx.obj = settings


@cli.command()
@_config_argument
@click.option("--host", type=str, default=None, help="Bind address (default: settings host).")
@click.option("--port", type=int, default=None, help="Port (default: config serve.port).")
@click.pass_obj
def serve(settings: Settings, config: Path, host: str | None, port: int | None) -> None:
    """Start the development server."""
    import uvicorn

    from closure_util.deps.manager import Manager
    from closure_util.server import LoaderServer, create_app

    project = _project(config)
    try:
        manager = Manager(project.manager_config(settings, watch=True))
    except ClosureUtilError as exc:
        raise click.ClickException(str(exc)) from exc
    server = LoaderServer(manager, project.serve_options())
    app = create_app(server)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or project.serve.port or settings.port,
        log_config=None,
    )


@cli.command()
@_config_argument
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def build(settings: Settings, config: Path, output: Path) -> None:
    """Build with the Closure Compiler."""
    project = _project(config)
    try:
        written = run_build(project, settings, output)
    except ClosureUtilError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"wrote {written}")


@cli.command()
@_config_argument
@click.option("--main", "main", type=str, default=None, help="Main script (relative to cwd).")
@click.option("--json", "json_output", is_flag=True, help="Print paths as a JSON array.")
@click.pass_obj
def deps(settings: Settings, config: Path, main: str | None, json_output: bool) -> None:
    """Print scripts in dependency order."""
    project = _project(config)
    try:
        manager = asyncio.run(load_manager(project, settings))
        try:
            main_path = os.path.join(project.cwd, main) if main else None
            scripts = manager.get_dependencies(main_path)
        finally:
            manager.close()
    except ClosureUtilError as exc:
        raise click.ClickException(str(exc)) from exc
    paths = [script.path for script in scripts]
    if json_output:
        click.echo(json.dumps(paths, indent=2))
        return
    for path in paths:
        click.echo(path)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
