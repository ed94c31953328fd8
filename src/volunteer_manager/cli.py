"""
Volunteer Manager CLI - Command-line interface for the API server.

Commands:
- init: Write a default configuration file
- serve: Run the API server
- routes: List the mounted routes
- hash-key: Hash an API key for the configuration file
"""

import importlib
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from fastapi import APIRouter, FastAPI
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .auth.identity import hash_key as hash_api_key
from .config import PortalConfig, create_default_config, load_config
from .utils.logging import setup_logging
from .web.server import create_app

app = typer.Typer(
    name="volunteer-manager",
    help="Typed actions and Data Table APIs for volunteer management",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


def _load_config(config: Optional[Path]) -> PortalConfig:
    if config is None:
        return PortalConfig.default()
    return load_config(config)


def _import_router(target: str) -> APIRouter:
    """
    Import a router given as "package.module:attribute".

    Raises:
        ValueError: If the target is malformed or does not name an APIRouter
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Router must be given as module:attribute, got {target!r}")

    router = getattr(importlib.import_module(module_name), attribute)
    if not isinstance(router, APIRouter):
        raise ValueError(f"{target} is not an APIRouter")
    return router


def _build_app(config: PortalConfig, routers: list[str]) -> FastAPI:
    return create_app(config, routers=[_import_router(target) for target in routers])


@app.command()
def init(
    path: Path = typer.Option(Path.cwd(), "--path", "-p", help="Project directory"),
) -> None:
    """
    Write a default volunteer-manager.toml configuration file.

    Example:
        volunteer-manager init
        volunteer-manager init --path deploy/
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        config_path = path / "volunteer-manager.toml"

        if config_path.exists():
            console.print(f"[yellow]Warning:[/yellow] {config_path} already exists.")
            raise typer.Exit(1)

        create_default_config(config_path)

        console.print(Panel.fit(
            f"[green]✓[/green] Wrote configuration: {config_path}\n\n"
            "[dim]Next steps:[/dim]\n"
            "1. Add API keys: volunteer-manager hash-key <key>\n"
            "2. Run the server: volunteer-manager serve --config volunteer-manager.toml",
            title="Configuration Created",
            border_style="green",
        ))

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    host: Optional[str] = typer.Option(None, "--host", help="Override the configured host"),
    port: Optional[int] = typer.Option(None, "--port", help="Override the configured port"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Log level"),
    router: list[str] = typer.Option(
        [], "--router", "-r", help="Additional router to mount, as module:attribute"
    ),
) -> None:
    """
    Run the API server.

    Example:
        volunteer-manager serve
        volunteer-manager serve -c volunteer-manager.toml -r myapp.api:router
    """
    try:
        portal_config = _load_config(config)
        setup_logging(
            level=log_level or portal_config.logging.level,
            log_file=portal_config.logging.file,
        )
        application = _build_app(portal_config, router)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    uvicorn.run(
        application,
        host=host or portal_config.server.host,
        port=port or portal_config.server.port,
        log_config=None,
    )


@app.command()
def routes(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    router: list[str] = typer.Option(
        [], "--router", "-r", help="Additional router to mount, as module:attribute"
    ),
) -> None:
    """
    List the routes served by the API server.

    Example:
        volunteer-manager routes -r myapp.api:router
    """
    try:
        application = _build_app(_load_config(config), router)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Routes")
    table.add_column("Path", style="cyan")
    table.add_column("Methods", style="green")
    table.add_column("Tags")

    # The OpenAPI document lists every mounted route, including those of nested routers
    paths = application.openapi().get("paths", {})
    for path, operations in sorted(paths.items()):
        methods = ", ".join(sorted(method.upper() for method in operations))
        tags = sorted({tag for operation in operations.values() for tag in operation.get("tags", [])})
        table.add_row(path, methods, ", ".join(tags))

    console.print(table)


@app.command("hash-key")
def hash_key(
    key: str = typer.Argument(..., help="The API key to hash"),
) -> None:
    """
    Print the hash of an API key, for use in the [[api_keys]] configuration.

    Example:
        volunteer-manager hash-key "$(openssl rand -hex 32)"
    """
    console.print(hash_api_key(key))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
