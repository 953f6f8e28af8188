"""API server command."""

import click

from ..config import Settings
from .base import ensure_initialized


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
@click.option("--port", "-p", default=8000, type=int, help="Port to bind to (default: 8000)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Start the API server.

    Examples:

        # Start on default port (8000)
        gymkeeper serve

        # Expose to network (all interfaces)
        gymkeeper serve --host 0.0.0.0

        # Development mode with auto-reload
        gymkeeper serve --reload
    """
    settings: Settings = ctx.obj
    ensure_initialized(ctx, settings)

    import uvicorn

    from ..web import create_app

    click.echo()
    click.echo(click.style("Starting gymkeeper API...", fg="green"))
    click.echo()
    click.echo(f"  API:     http://{host}:{port}/api/v1")
    click.echo(f"  Docs:    http://{host}:{port}/docs")
    click.echo()
    click.echo("Press Ctrl+C to stop the server.")
    click.echo()

    # The reloader re-imports the factory and reads settings from the environment
    uvicorn.run(
        create_app(settings) if not reload else "gymkeeper.web:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=reload,
        log_level=settings.log_level.lower(),
    )
