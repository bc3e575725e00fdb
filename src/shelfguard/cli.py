"""Command-line interface for ShelfGuard.

Operator commands for initializing the role tables, bootstrapping role
assignments and inspecting roles and permissions directly in the database.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

import click
from sqlalchemy.exc import SQLAlchemyError

from shelfguard.core.config import get_settings
from shelfguard.core.logging import configure_logging, get_logger
from shelfguard.infrastructure.persistence.database import get_db_manager, init_database

T = TypeVar("T")


@click.group()
@click.version_option(version="0.1.0", prog_name="ShelfGuard")
def cli() -> None:
    """ShelfGuard - Role-based access control for content management."""


def _run_against_database(work: Coroutine[Any, Any, T]) -> T:
    """Run a database coroutine, turning a missing schema into a hint for the operator."""
    try:
        return asyncio.run(work)
    except SQLAlchemyError as e:
        get_logger(__name__).error("CLI database operation failed", error=str(e))
        click.echo(
            "Error: Role tables are not available. Run 'shelfguard init-db' first.",
            err=True,
        )
        raise SystemExit(1) from e


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates the role tables and seeds the Admin and default roles.
    Safe to run repeatedly; existing roles are left alone.
    """
    settings = get_settings()
    configure_logging(settings)

    if not force:
        click.confirm(
            "This will create the role tables and seed default roles. Continue?",
            abort=True,
            default=False,
        )

    async def initialize() -> None:
        db = get_db_manager()
        try:
            await init_database(db)
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
def roles() -> None:
    """List all roles with their permission counts."""
    from shelfguard.infrastructure.persistence.repositories import RoleRepository

    configure_logging(get_settings())

    async def list_roles() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                role_repo = RoleRepository(session)
                all_roles = await role_repo.list_all()
                for role in all_roles:
                    users = await role_repo.get_user_ids(role.id)
                    flags = []
                    if role.hidden:
                        flags.append("hidden")
                    if role.system_default:
                        flags.append("default")
                    click.echo(
                        f"{role.id:>4}  {role.display_name:<30} "
                        f"{len(role.permissions):>3} permissions  "
                        f"{len(users):>4} users  {','.join(flags)}".rstrip()
                    )
            if not all_roles:
                click.echo("No roles found. Run 'shelfguard init-db' first.")
        finally:
            await db.disconnect()

    _run_against_database(list_roles())


@cli.command("assign-role")
@click.argument("user_id")
@click.argument("role_name")
@click.option(
    "--remove",
    is_flag=True,
    help="Take the role away instead of granting it",
)
def assign_role(user_id: str, role_name: str, remove: bool) -> None:
    """Grant ROLE_NAME to USER_ID.

    ROLE_NAME is the role's machine name (e.g. 'admin') or its display name.
    Intended for bootstrapping the first administrator, so no permission
    check is made.
    """
    from shelfguard.infrastructure.persistence.repositories import RoleRepository

    configure_logging(get_settings())
    logger = get_logger(__name__)

    async def change_assignment() -> tuple[str, bool] | None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                role_repo = RoleRepository(session)
                role = await role_repo.get_by_name(role_name)
                if role is None:
                    role = await role_repo.get_by_display_name(role_name)
                if role is None:
                    return None
                if remove:
                    changed = await role_repo.remove_user(role.id, user_id)
                else:
                    changed = await role_repo.add_user(role.id, user_id)
                await session.commit()
                return role.display_name, changed
        finally:
            await db.disconnect()

    outcome = _run_against_database(change_assignment())
    if outcome is None:
        click.echo(f"Error: Role '{role_name}' not found", err=True)
        raise SystemExit(1)

    display_name, changed = outcome
    logger.info(
        "Role assignment changed via CLI",
        user_id=user_id,
        role_name=role_name,
        removed=remove,
        changed=changed,
    )
    if remove:
        if changed:
            click.echo(f"Removed role '{display_name}' from {user_id}")
        else:
            click.echo(f"{user_id} does not hold role '{display_name}'")
    elif changed:
        click.echo(f"Assigned role '{display_name}' to {user_id}")
    else:
        click.echo(f"{user_id} already holds role '{display_name}'")


@cli.command()
@click.argument("user_id")
@click.argument("permission")
def check(user_id: str, permission: str) -> None:
    """Check whether USER_ID holds PERMISSION.

    Exits with status 1 when the permission is not granted.
    """
    from shelfguard.application.services.permission_gate import PermissionGate

    configure_logging(get_settings())
    logger = get_logger(__name__)

    async def run_check() -> bool:
        db = get_db_manager()
        try:
            async with db.session() as session:
                return await PermissionGate(session).check(user_id, permission)
        finally:
            await db.disconnect()

    allowed = _run_against_database(run_check())
    logger.debug("Permission checked via CLI", user_id=user_id, permission=permission)
    if allowed:
        click.echo(f"ALLOWED: {user_id} has '{permission}'")
    else:
        click.echo(f"DENIED: {user_id} lacks '{permission}'")
        raise SystemExit(1)


@cli.command()
def info() -> None:
    """Display ShelfGuard configuration."""
    from shelfguard.domain.services import get_permission_registry

    settings = get_settings()
    registry = get_permission_registry()

    click.echo(f"""
ShelfGuard v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}

Database:
  URL:          {settings.database_url}
  Echo:         {settings.db_echo}

Access Control:
  Permissions:  {len(registry)}
  Admin Role:   {settings.admin_role_name}
  Default Role: {settings.default_role_name}
  Orphans:      {settings.orphaned_user_policy}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> None:
    """Main entry point for the CLI.

    Called when the `shelfguard` command is run or when using
    `python -m shelfguard`.
    """
    cli()


if __name__ == "__main__":
    main()
