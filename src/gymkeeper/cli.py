"""CLI entry point for gymkeeper."""

import logging

import click

from . import __version__
from .commands import init, seed, serve, stats
from .config import Settings


@click.group()
@click.version_option(version=__version__, prog_name="gymkeeper")
@click.pass_context
def main(ctx: click.Context):
    """gymkeeper: gym management backend.

    Settings are read from GYMKEEPER_* environment variables.

    Example usage:

        # Create the database and the first super-admin
        gymkeeper init --phone 1234567890 --password s3cret!

        # Add sample plans and staff
        gymkeeper seed

        # Run the API
        gymkeeper serve --port 8000
    """
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


# Register commands
main.add_command(init)
main.add_command(seed)
main.add_command(serve)
main.add_command(stats)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
