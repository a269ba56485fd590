# Overview: Flask CLI command groups for bootstrap, provisioning, and inspection.

# backend/sealtrack/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask db upgrade
#   Create or migrate the schema.
# - python -m flask system init --admin-email admin@sealtrack.local --admin-password "Password123!"
#   Idempotent bootstrap: main station, admin identity + profile, default settings.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email a@b.c --name "Jane" --role station-manager --station-id <id>
#   Provision a user and print their password reset token.
# - python -m flask users reset-link --email a@b.c
#   Issue a fresh password reset token.
#
# Seals:
# - python -m flask seals stats [--station "Central Depot"]
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Identity
from .permissions import ALL_ROLES, ROLE_ADMIN
from .services import (
    entity_store,
    get_auth_provider,
    get_document_store,
    get_lifecycle_service,
    get_settings_service,
    get_station_service,
    get_user_service,
    session_service,
)
from .services.auth_service import PasswordValidationError
from .services.entities import Actor
from .time_utils import to_document_timestamp, utcnow


SYSTEM_ACTOR = Actor(id="system", name="System")


@click.group("system")
def system_group():
    """System bootstrap and repair commands."""


@system_group.command("init")
@click.option("--station-name", default="Main Store", help="Name of the main station")
@click.option("--admin-email", default="admin@sealtrack.local", help="Admin email")
@click.option("--admin-name", default="Administrator", help="Admin display name")
@click.option("--admin-password", default="Password123!", help="Admin password")
@with_appcontext
def init_system(station_name, admin_email, admin_name, admin_password):
    """
    Initialize SealTrack: main station, admin account, default settings.

    Safe to run more than once; existing records are kept.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing SealTrack...")
    store = get_document_store()

    stations = get_station_service()
    existing = [s for s in stations.list_stations() if s.name == station_name]
    if existing:
        station = existing[0]
        click.echo(f"PASS Using existing station: {station.name} (ID: {station.id})")
    else:
        station = stations.add_station({"name": station_name, "type": "main"}, actor=SYSTEM_ACTOR)
        click.echo(f"PASS Created station: {station.name} (ID: {station.id})")

    auth = get_auth_provider()
    identity = db.session.query(Identity).filter_by(email=admin_email).first()
    if identity:
        click.echo(f"WARN  Admin '{admin_email}' already exists, skipping...")
        identity_id = identity.id
    else:
        try:
            identity_id = auth.create_identity(admin_email, admin_password, display_name=admin_name)
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            raise SystemExit(1)
        click.echo(f"PASS Created admin identity: {admin_email}")

    users = entity_store.users(store)
    if users.get(identity_id) is None:
        now = to_document_timestamp(utcnow())
        users.create(
            {
                "id": identity_id,
                "email": admin_email,
                "name": admin_name,
                "role": ROLE_ADMIN,
                "createdAt": now,
                "lastActive": now,
            },
            doc_id=identity_id,
        )
        click.echo("PASS Created admin profile")

    settings = get_settings_service()
    if not settings.get_organization()["name"]:
        settings.update_organization({"name": "SealTrack"})
        click.echo("PASS Initialized organization settings")

    click.echo("\n" + "=" * 60)
    click.echo("DONE SealTrack Initialized Successfully!")
    click.echo("=" * 60)
    click.echo(f"\nAdmin: {admin_email}")
    click.echo("SECURITY Change the admin password in production!")


@system_group.command("reset-db")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    get_document_store().clear()
    get_settings_service().invalidate()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group("users")
def users_group():
    """User inspection and provisioning commands."""


@users_group.command("list")
@with_appcontext
def list_users():
    users = get_user_service().list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<22} {'Name':<24} {'Email':<28} {'Role'}")
    click.echo("=" * 90)
    for user in users:
        click.echo(f"{user.id:<22} {user.name:<24} {user.email:<28} {user.role}")
    click.echo("=" * 90 + "\n")


@users_group.command("create")
@click.option("--email", prompt=True, help="Email address")
@click.option("--name", prompt=True, help="Display name")
@click.option("--role", type=click.Choice(list(ALL_ROLES)), prompt=True, help="Role")
@click.option("--station-id", default=None, help="Station ID (station and sub-station managers)")
@with_appcontext
def create_user_cli(email, name, role, station_id):
    """Provision a user. Prints the reset token they use to set a password."""
    try:
        provisioned = get_user_service().add_user(
            {"email": email, "name": name, "role": role, "stationId": station_id},
            actor=SYSTEM_ACTOR,
        )
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {name} ({email}) with role '{role}'")
    click.echo(f"     Reset token: {provisioned.reset_token}")


@users_group.command("reset-link")
@click.option("--email", prompt=True, help="Email address")
@with_appcontext
def reset_link_cli(email):
    token = get_auth_provider().send_password_reset(email)
    if token is None:
        click.echo(f"FAIL No active account for {email}")
        raise SystemExit(1)
    click.echo(f"PASS Reset token for {email}: {token}")


@click.group("seals")
def seals_group():
    """Seal inspection commands."""


@seals_group.command("stats")
@click.option("--station", default=None, help="Restrict to one station (by name)")
@with_appcontext
def seal_stats(station):
    stats = get_lifecycle_service().statistics(station_name=station)

    click.echo(f"\nSeals{' at ' + station if station else ''}: {stats.total}")
    for status, count in stats.by_status.items():
        click.echo(f"  {status:<12} {count}")
    click.echo(f"  In use       {stats.in_use}")
    click.echo(f"  Unutilized   {stats.unutilized}")
    click.echo(f"  Utilization  {stats.utilization_rate}%\n")


@click.group("maintenance")
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command("cleanup-sessions")
@click.option("--older-than-days", type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions(older_than_days):
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"PASS Deleted {deleted} expired or revoked session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(seals_group)
    app.cli.add_command(maintenance_group)
