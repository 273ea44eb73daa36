"""
Restaurant backend CLI.

Command-line interface for common operations: run the servers, seed the
database, check health and tail the notification socket.
"""

import asyncio
import sys
import time
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="restaurant",
    help="Restaurant ordering backend CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Server Commands
# =============================================================================

@app.command()
def serve(
    service: str = typer.Argument("api", help="api or gateway"),
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (defaults to the configured one)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the REST API or the standalone WebSocket gateway."""
    import uvicorn

    from shared.config.settings import settings

    targets = {
        "api": ("rest_api.main:app", settings.rest_api_port),
        "gateway": ("ws_gateway.main:app", settings.ws_gateway_port),
    }
    if service not in targets:
        console.print(f"[red]Unknown service: {service} (use api or gateway)[/red]")
        raise typer.Exit(1)

    target, default_port = targets[service]
    console.print(f"[blue]Starting {service} on {host}:{port or default_port}[/blue]")
    uvicorn.run(target, host=host, port=port or default_port, reload=reload)


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Create tables and seed demo users, tables, menu and inventory."""
    from rest_api.models import Base
    from rest_api.seed import DEMO_PASSWORD, USERS, seed
    from shared.config.settings import settings
    from shared.infrastructure.db import SessionLocal, engine

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        created = seed(db)

    if not created:
        console.print("[yellow]Database already has users, nothing seeded[/yellow]")
        return

    table = Table(title="Demo accounts")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Role", style="green")
    for user in USERS:
        table.add_row(user["name"], user["email"], user["role"])
    console.print(table)
    console.print(f"[green]✓ Seed complete[/green] (password: {DEMO_PASSWORD})")


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    api_url: str = typer.Option("http://localhost:8000", help="REST API base URL"),
    gateway_url: str = typer.Option("http://localhost:8001", help="WS gateway base URL"),
):
    """Check service health."""
    import httpx

    async def _health():
        services = [
            ("REST API", f"{api_url.rstrip('/')}/api/health"),
            ("WS Gateway", f"{gateway_url.rstrip('/')}/ws/health"),
        ]

        table = Table(title="Service Health")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Response Time", style="yellow")

        async with httpx.AsyncClient(timeout=5.0) as client:
            for name, url in services:
                try:
                    start = time.perf_counter()
                    response = await client.get(url)
                    elapsed = (time.perf_counter() - start) * 1000

                    if response.status_code == 200:
                        table.add_row(name, "✓ Healthy", f"{elapsed:.0f}ms")
                    else:
                        table.add_row(name, f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")
                except httpx.HTTPError as e:
                    table.add_row(name, f"✗ {type(e).__name__}", "-")

        console.print(table)

    asyncio.run(_health())


# =============================================================================
# WebSocket Commands
# =============================================================================

@app.command()
def listen(
    url: str = typer.Option("ws://localhost:8000/ws", help="WebSocket URL"),
    token: str = typer.Option(..., "--token", "-t", help="JWT or demo token"),
    table_id: list[int] = typer.Option([], "--table", help="Table rooms to join"),
):
    """Print notifications as they arrive, reconnecting on drops."""
    from ws_gateway.client import ReconnectionManager

    async def on_connect(manager: ReconnectionManager):
        console.print(f"[green]✓ Connected to {url}[/green]")
        for tid in table_id:
            await manager.join_table(tid)

    async def on_notification(event: str, payload):
        message = payload.get("message") if isinstance(payload, dict) else payload
        priority = payload.get("priority", "") if isinstance(payload, dict) else ""
        console.print(f"[cyan]{event}[/cyan] [yellow]{priority}[/yellow] {message}")

    async def _listen():
        manager = ReconnectionManager(url, token, on_connect=on_connect, on_notification=on_notification)
        try:
            await manager.run()
        finally:
            await manager.close()
        if manager.last_close_code is not None:
            console.print(f"[red]Disconnected (code {manager.last_close_code})[/red]")

    try:
        asyncio.run(_listen())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command()
def version():
    """Show version information."""
    from rest_api.main import API_VERSION

    table = Table(title="Restaurant Backend Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", API_VERSION)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
