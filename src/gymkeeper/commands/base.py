"""Shared CLI utilities."""

import asyncio
from functools import wraps
from pathlib import Path

import click

from ..config import Settings
from ..db import get_db_path


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def ensure_initialized(ctx: click.Context, settings: Settings) -> None:
    """Ensure the database is initialized."""
    if not settings.db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Database not initialized. Run 'gymkeeper init' first."
        )
        ctx.exit(1)


def db_path_for(settings: Settings) -> Path:
    """Database path for the configured data directory (created if missing)."""
    return get_db_path(settings.data_dir)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message)


def echo_info(message: str) -> None:
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format rows as a left-aligned plain-text table."""
    if not rows:
        return ""

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    def line(cells) -> str:
        return "".join(str(c).ljust(widths[i] + padding) for i, c in enumerate(cells))

    lines = [line(headers), "".join("-" * w + " " * padding for w in widths)]
    lines.extend(line(row) for row in rows)
    return "\n".join(lines)
