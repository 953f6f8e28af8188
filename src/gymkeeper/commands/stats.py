"""Quick statistics command."""

import click

from ..config import Settings
from ..db import Store
from ..services.statistics import quick_statistics
from .base import async_command, ensure_initialized, format_table


@click.command()
@click.pass_context
@async_command
async def stats(ctx: click.Context):
    """Print headline numbers: users, clients, revenue, salaries, profit."""
    settings: Settings = ctx.obj
    ensure_initialized(ctx, settings)

    numbers = await quick_statistics(Store(settings.db_path))
    rows = [
        ["Users", numbers["total_users"]],
        ["Clients", numbers["total_clients"]],
        ["Revenue", f"{numbers['total_revenue']:g}"],
        ["Salaries", f"{numbers['total_salaries']:g}"],
        ["Net profit", f"{numbers['net_profit']:g}"],
    ]
    click.echo(format_table(["Metric", "Value"], rows))
