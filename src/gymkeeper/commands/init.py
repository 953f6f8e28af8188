"""Initialize database command."""

import click
import questionary

from ..config import Settings
from ..db import Store, init_db
from ..errors import GymError
from ..models.user import Role, User
from ..security import hash_password
from ..services.identity import generate_unique_id
from .base import (
    async_command,
    db_path_for,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
)

MIN_PASSWORD_LENGTH = 6


async def prompt_super_admin(phone: str | None, password: str | None) -> tuple[str, str]:
    """Ask for whatever credentials were not given on the command line."""
    if not phone:
        phone = await questionary.text("Super-admin phone number:").ask_async()
    if not password:
        password = await questionary.password(
            "Super-admin password:",
            validate=lambda p: len(p) >= MIN_PASSWORD_LENGTH
            or f"At least {MIN_PASSWORD_LENGTH} characters",
        ).ask_async()
    return phone, password


@click.command()
@click.option("--phone", help="Phone number of the first super-admin")
@click.option("--password", help="Password of the first super-admin")
@click.option("--name", default="Super Admin", show_default=True, help="Display name")
@click.pass_obj
@async_command
async def init(settings: Settings, phone: str | None, password: str | None, name: str):
    """Create the data directory, the schema and the first super-admin.

    The super-admin is only created while the user table is empty.
    Missing credentials are asked for interactively.

    Example:

        gymkeeper init --phone 1234567890 --password s3cret!
    """
    db_path = db_path_for(settings)
    echo_info(f"Initializing gymkeeper in {settings.data_dir}")

    await init_db(db_path)
    echo_success("Database initialized")

    store = Store(db_path)
    if await store.users.count():
        echo_info("Users already exist; skipping super-admin creation")
        return

    phone, password = await prompt_super_admin(phone, password)
    if not phone or not password:
        echo_warning("No super-admin created. Run 'gymkeeper init' again to add one.")
        return
    if len(password) < MIN_PASSWORD_LENGTH:
        echo_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        raise SystemExit(1)

    try:
        user = User(
            name=name,
            phone=phone,
            role=Role.SUPER_ADMIN,
            user_id=await generate_unique_id(phone, Role.SUPER_ADMIN, store.users.exists_user_id),
            password_hash=hash_password(password, settings.bcrypt_rounds),
        )
        await store.users.create(user)
    except GymError as e:
        echo_error(e.message)
        raise SystemExit(1) from e

    echo_success(f"Super-admin {user.name} created (user id {user.user_id})")
    click.echo()
    click.echo("Next steps:")
    click.echo("  gymkeeper seed      # Sample plans and staff")
    click.echo("  gymkeeper serve     # Start the API")
