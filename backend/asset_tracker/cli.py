# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/asset_tracker/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--plant-code P01 --plant-name "Main Plant"]
#   Idempotent bootstrap: creates tables, a default plant and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Plants:
# - python -m flask plants create --code P02 --name "North Plant" --address "..."
# - python -m flask plants list
#
# Users:
# - python -m flask users create --username op1 --role operator --plant-code P01
# - python -m flask users list
#
# Assets:
# - python -m flask assets provision --plant-code P01 --asset-type BIN --customer ACME --quantity 50 --pm-cycle 10
# - python -m flask assets list --plant-code P01
# - python -m flask assets check-locations [--plant-code P01] [--fix]
#   Compare stored current_location with movement history; --fix rewrites drifted rows.
#
# Sessions:
# - python -m flask sessions list --plant-code P01 --status active

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Asset, Plant, User
from .services import asset_service, auth_service, location_service, plant_service, scan_session_service
from .validation import TrackerError


def _fail(exc: TrackerError):
    raise click.ClickException(f"{exc.message} ({exc.kind})")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--plant-code', default='P01', help='Default plant code')
@click.option('--plant-name', default='Main Plant', help='Default plant name')
@click.option('--admin-username', default='admin', help='Admin username')
@click.option('--admin-password', default='admin123', help='Admin password (forced change at first login)')
@with_appcontext
def init_system(plant_code, plant_name, admin_username, admin_password):
    """
    Initialize the tracker: tables, a default plant and an admin user.

    SECURITY: The admin must change the password at first login.
    """
    click.echo("START Initializing asset tracker...")
    db.create_all()

    plant = db.session.query(Plant).filter_by(code=plant_code.upper()).first()
    if not plant:
        plant = plant_service.create_plant(plant_code, plant_name)
        click.echo(f"PASS Created plant: {plant.code} (ID: {plant.id})")
    else:
        click.echo(f"PASS Using existing plant: {plant.code} (ID: {plant.id})")

    admin = db.session.query(User).filter_by(username=admin_username).first()
    if not admin:
        try:
            admin = auth_service.create_user(admin_username, admin_password, "admin")
        except TrackerError as exc:
            _fail(exc)
        click.echo(f"PASS Created admin user: {admin.username}")
    else:
        click.echo(f"PASS Using existing admin user: {admin.username}")

    click.echo("DONE Asset tracker ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset.")


@click.group('plants')
def plants_group():
    """Plant management commands."""


@plants_group.command('create')
@click.option('--code', required=True, help='Plant code (unique)')
@click.option('--name', required=True, help='Plant name')
@click.option('--address', default='', help='Postal address printed on challans')
@with_appcontext
def create_plant_cmd(code, name, address):
    try:
        plant = plant_service.create_plant(code, name, address)
    except TrackerError as exc:
        _fail(exc)
    click.echo(f"PASS Created plant {plant.code} (ID: {plant.id})")


@plants_group.command('list')
@with_appcontext
def list_plants_cmd():
    for plant in plant_service.list_plants():
        state = "active" if plant.is_active else "inactive"
        click.echo(f"{plant.id:>4}  {plant.code:<10} {plant.name:<30} {state}")


@click.group('users')
def users_group():
    """User inspection/bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'operator']), prompt=True, help='Role')
@click.option('--plant-code', help='Plant code (required for operators)')
@with_appcontext
def create_user_cmd(username, password, role, plant_code):
    try:
        plant_id = plant_service.get_plant_by_code(plant_code).id if plant_code else None
        user = auth_service.create_user(username, password, role, plant_id)
    except TrackerError as exc:
        _fail(exc)
    click.echo(f"PASS Created {user.role} {user.username} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users_cmd():
    for user in auth_service.list_users():
        plant = user.plant.code if user.plant else "-"
        state = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<9} {plant:<10} {state}")


@click.group('assets')
def assets_group():
    """Asset provisioning and consistency commands."""


@assets_group.command('provision')
@click.option('--plant-code', required=True, help='Home plant code')
@click.option('--asset-type', required=True, help='Asset type (e.g. BIN)')
@click.option('--customer', required=True, help='Owning customer')
@click.option('--quantity', type=int, required=True, help='Number of assets to create')
@click.option('--description', default='', help='Free-text description')
@click.option('--pm-cycle', type=int, default=None, help='IN scans between preventive maintenance')
@with_appcontext
def provision_assets_cmd(plant_code, asset_type, customer, quantity, description, pm_cycle):
    try:
        plant = plant_service.get_plant_by_code(plant_code)
        assets = asset_service.provision_assets(
            asset_type=asset_type,
            customer=customer,
            plant_id=plant.id,
            quantity=quantity,
            description=description,
            pm_cycle=pm_cycle,
        )
    except TrackerError as exc:
        _fail(exc)
    click.echo(f"PASS Created {len(assets)} assets: {assets[0].asset_code} .. {assets[-1].asset_code}")


@assets_group.command('list')
@click.option('--plant-code', help='Filter by plant code')
@with_appcontext
def list_assets_cmd(plant_code):
    try:
        plant_id = plant_service.get_plant_by_code(plant_code).id if plant_code else None
    except TrackerError as exc:
        _fail(exc)
    for asset in asset_service.search_assets(plant_id=plant_id):
        pm = asset.pm_cycle if asset.pm_cycle is not None else "-"
        click.echo(
            f"{asset.asset_code:<32} {asset.current_location:<15} "
            f"cycle {asset.duty_cycle}/{pm}  {'active' if asset.is_active else 'inactive'}"
        )


@assets_group.command('check-locations')
@click.option('--plant-code', help='Limit to one plant')
@click.option('--fix', is_flag=True, help='Rewrite drifted current_location values from history')
@with_appcontext
def check_locations_cmd(plant_code, fix):
    """Audit the stored location projection against the movement history."""
    try:
        plant_id = plant_service.get_plant_by_code(plant_code).id if plant_code else None
    except TrackerError as exc:
        _fail(exc)

    drift = location_service.find_location_drift(plant_id)
    if not drift:
        click.echo("PASS Stored locations match movement history.")
        return

    for row in drift:
        click.echo(f"DRIFT {row['asset_code']}: stored={row['stored']} history={row['derived']}")

    if fix:
        for row in drift:
            asset = db.session.get(Asset, row["asset_id"])
            asset.current_location = row["derived"]
        db.session.commit()
        click.echo(f"FIXED {len(drift)} assets.")
    else:
        click.echo(f"FAIL {len(drift)} assets drifted (re-run with --fix to repair).")


@click.group('sessions')
def sessions_group():
    """Scan session inspection commands."""


@sessions_group.command('list')
@click.option('--plant-code', required=True, help='Plant code')
@click.option('--status', type=click.Choice(['draft', 'active', 'completed']), help='Filter by status')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_sessions_cmd(plant_code, status, limit):
    try:
        plant = plant_service.get_plant_by_code(plant_code)
    except TrackerError as exc:
        _fail(exc)
    for session in scan_session_service.list_sessions(plant.id, status=status, limit=limit):
        target = session.target_qty if session.target_qty is not None else "-"
        click.echo(
            f"{session.id:>5}  {session.mode:<5} {session.document_no or '-':<20} "
            f"{session.scanned_qty}/{target}  {session.status:<9} {session.remark or ''}"
        )


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(plants_group)
    app.cli.add_command(users_group)
    app.cli.add_command(assets_group)
    app.cli.add_command(sessions_group)
