"""Typer CLI for AcroJam."""

from __future__ import annotations

import json
from pathlib import Path

from sqlalchemy.exc import IntegrityError, OperationalError
import typer
import uvicorn

from .config import (
    DEFAULTS,
    load_settings,
    settings,
    settings_as_dict,
    update_config_file,
)
from .crud import create_user as create_user_row
from .database import get_session
from .seed import seed_fake_data
from .storage import init_db, upgrade_database

app = typer.Typer(help="AcroJam command-line interface")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _read_only_exit(exc: OperationalError, action: str) -> None:
    message = str(getattr(exc, "orig", exc)).lower()
    if "readonly" in message or "read-only" in message:
        typer.secho(
            f"Unable to {action} because the database is read-only. "
            f"Ensure write access to {settings.database_path}.",
            err=True,
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)


@app.command("init-db")
def init_database() -> None:
    """Create the SQLite database and apply all migrations."""
    try:
        init_db()
    except OperationalError as exc:
        _read_only_exit(exc, "initialise the database")
        raise
    typer.echo(f"Database ready at {settings.database_path}")


@app.command("upgrade-db")
def upgrade_db(
    no_backup: bool = typer.Option(
        False,
        "--no-backup",
        help="Skip creating a .bak copy of the database before upgrading",
    ),
) -> None:
    """Upgrade the SQLite database schema if needed."""
    try:
        actions = upgrade_database(make_backup=not no_backup)
    except OperationalError as exc:
        _read_only_exit(exc, "upgrade")
        raise

    typer.echo("Database upgrade complete:")
    for action in actions:
        typer.echo(f"- {action}")


@app.command("create-user")
def create_user(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Unique email address"),
    admin: bool = typer.Option(False, "--admin", help="Grant admin rights"),
) -> None:
    """Create a member and print their API token."""
    init_db()
    try:
        with get_session() as session:
            user = create_user_row(session, name=name, email=email, is_admin=admin)
            token = user.api_token
    except IntegrityError:
        typer.secho(
            f"A user with email {email} already exists.",
            err=True,
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)
    typer.echo(token)


@app.command("runserver")
def runserver(
    host: str = typer.Option(settings.app_host, "--host", help="Host to bind"),
    port: int = typer.Option(settings.app_port, "--port", help="Port to bind"),
):
    """Start the FastAPI app under uvicorn."""
    init_db()
    config = uvicorn.Config(
        "acrojam.api:app",
        host=host,
        port=port,
        reload=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    server = uvicorn.Server(config)
    typer.echo(f"Starting AcroJam on {host}:{port}")
    server.run()


@app.command("seed-data")
def seed_data(
    users: int = typer.Option(
        settings.seed_users, "--users", min=1, help="Number of members to create"
    ),
    locations: int = typer.Option(
        settings.seed_locations, "--locations", min=0, help="Number of venues to create"
    ),
    max_events: int = typer.Option(
        settings.seed_events_per_location,
        "--max-events",
        min=1,
        help="Maximum events to hold at each venue",
    ),
    max_rsvps: int = typer.Option(
        settings.seed_rsvps_per_event,
        "--max-rsvps",
        min=0,
        help="Maximum RSVPs to attach to each event",
    ),
    recurring_percent: int = typer.Option(
        settings.seed_recurring_percent,
        "--recurring-percent",
        min=0,
        max=100,
        help="Percentage of events that repeat (0-100)",
    ),
):
    """Populate the database with fake members, venues and events for testing."""
    stats = seed_fake_data(
        user_count=users,
        location_count=locations,
        max_events_per_location=max_events,
        max_rsvps_per_event=max_rsvps,
        recurring_percentage=recurring_percent,
    )
    typer.echo(
        f"Seed complete: {stats['users']} users, {stats['locations']} locations, "
        f"{stats['events']} events, {stats['rsvps']} RSVPs created."
    )


@app.command("show-config")
def show_config(
    config_path: Path | None = typer.Option(
        None, "--config-path", help="Path to acrojam.toml (default: ./acrojam.toml)"
    ),
) -> None:
    """Print the effective configuration as JSON."""
    target_path = config_path or settings.config_path
    effective = settings_as_dict(load_settings(target_path))
    effective["config_path"] = str(target_path)
    typer.echo(json.dumps(effective, indent=2))


@app.command("set-config")
def set_config(
    pairs: list[str] = typer.Argument(..., help="KEY=VALUE pairs to persist"),
    config_path: Path | None = typer.Option(
        None, "--config-path", help="Path to acrojam.toml (default: ./acrojam.toml)"
    ),
) -> None:
    """Persist one or more settings to the configuration file."""
    updates: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip().lower()
        if not sep or key not in DEFAULTS:
            typer.secho(
                f"Unknown setting {pair!r}. Valid keys: {', '.join(sorted(DEFAULTS))}",
                err=True,
                fg=typer.colors.RED,
            )
            raise typer.Exit(code=1)
        updates[key] = value.strip()

    target_path = config_path or settings.config_path
    try:
        update_config_file(updates, path=target_path)
    except ValueError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Updated configuration in {target_path}")


if __name__ == "__main__":
    app()
