"""CLI for shopstack.

Runs any of the services under uvicorn with JSON logging and tracing set up.
"""
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from shopstack.config import get_settings
from shopstack.observability import setup_logging, shutdown_observability
from shopstack.services import SERVICES

app = typer.Typer(
    name="shopstack",
    help="Traced e-commerce demo services",
    add_completion=False,
)

console = Console()


@app.command()
def serve(
    service: str = typer.Argument(..., help="Service to run: auth, product, cart, order or todo"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default: SHOP_API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: SHOP_API_PORT or the service's port)"),
    reload: bool = typer.Option(False, "--reload/--no-reload", help="Restart on code changes"),
) -> None:
    """Run one service."""
    spec = SERVICES.get(service)
    if spec is None:
        console.print(f"[red]Error:[/red] Unknown service '{service}'. Choose from: {', '.join(SERVICES)}")
        raise typer.Exit(1)

    settings = get_settings()
    setup_logging(settings.for_service(spec.service_name))

    try:
        uvicorn.run(
            spec.factory,
            factory=True,
            host=host or settings.api_host,
            port=port or settings.api_port or spec.port,
            reload=reload,
            log_config=None,
        )
    finally:
        shutdown_observability()


@app.command()
def services() -> None:
    """List the services and their default ports."""
    table = Table(title="shopstack services")
    table.add_column("Service", style="cyan")
    table.add_column("Port", justify="right", style="green")
    table.add_column("Description")

    for spec in SERVICES.values():
        table.add_row(spec.name, str(spec.port), spec.description)

    console.print(table)


@app.callback()
def callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """shopstack - traced e-commerce demo services."""
    if version:
        from shopstack import __version__
        console.print(f"shopstack v{__version__}")
        raise typer.Exit()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
