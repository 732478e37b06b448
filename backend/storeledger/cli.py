# Overview: Flask CLI command groups for bootstrap, backups and register inspection.

# backend/storeledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (if missing) and seed the default admin/employee users.
# - python -m flask system backup [--dest ./backups]
#   Copy the SQLite database to a timestamped file.
#
# Register inspection:
# - python -m flask register status
#   Show the open (or most recent) register session with its totals.
# - python -m flask register summary --session-id 3
#   Compare stored session totals with totals recomputed from movements.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import LedgerError
from .services import auth_service, backup_service, register_service, reporting_service


def _fmt_cents(cents: int | None) -> str:
    return f"{(cents or 0) / 100:.2f}"


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and default users. Safe to run repeatedly."""
    click.echo("START Initializing store ledger...")
    db.create_all()
    click.echo("PASS Tables ready")

    created = auth_service.seed_default_users()
    if created:
        for user in created:
            click.echo(f"PASS Created user: {user.username} ({user.role})")
        click.echo("WARN Default passwords in use; change them after first login.")
    else:
        click.echo("PASS Users already present, nothing to seed")


@system_group.command('backup')
@click.option('--dest', type=click.Path(file_okay=False), help='Destination directory')
@with_appcontext
def backup_cli(dest):
    """Copy the database file to a timestamped backup."""
    try:
        path = backup_service.backup_now(dest)
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Backup written to {path}")


@click.group('register')
def register_group():
    """Cash register inspection commands."""


@register_group.command('status')
@with_appcontext
def register_status_cli():
    """Show the open or most recent register session."""
    status = register_service.register_status()
    session = status["session"]
    if session is None:
        click.echo("No register session has ever been opened.")
        return

    state = "OPEN" if status["open"] else "CLOSED"
    click.echo(f"Session {session['id']} [{state}] opened {session['opened_at']} by {session['opened_by']}")
    click.echo(f"  opening float: {_fmt_cents(session['opening_float_cents'])}")
    for method, total in session["totals"].items():
        click.echo(f"  {method:<9} {_fmt_cents(total)}")
    click.echo(f"  movements: {len(status['movements'])}")


@register_group.command('summary')
@click.option('--session-id', type=int, required=True, help='Register session ID')
@with_appcontext
def register_summary_cli(session_id):
    """Check stored totals against the session's movements."""
    try:
        summary = reporting_service.cash_session_summary(session_id)
    except LedgerError as e:
        raise click.ClickException(str(e))

    for method, stored in summary["stored_totals"].items():
        recomputed = summary["movement_totals"][method]
        flag = "PASS" if stored == recomputed else "FAIL"
        click.echo(f"{flag} {method:<9} stored={_fmt_cents(stored)} movements={_fmt_cents(recomputed)}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(register_group)
