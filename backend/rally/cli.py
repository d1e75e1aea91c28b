# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/rally/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent: create any missing tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create two demo teams, users, an activity, a hoodie and a ticket.
#
# Team and user inspection/bootstrap:
# - python -m flask teams list
# - python -m flask teams create --name "Red" --code RED
# - python -m flask users create --name "Ada" --email ada@example.org --role STUDENT --team-id 1
#
# Leaderboard:
# - python -m flask leaderboard show
# - python -m flask leaderboard publish
#   Push the current ranking to connected Socket.IO clients.
#
# Inventory:
# - python -m flask inventory show --product-id 1
# - python -m flask inventory set --product-id 1 --size M --quantity 10

import click
from flask.cli import with_appcontext

from .errors import RallyError
from .extensions import db
from .models import Team, User
from .models.teams import ROLES, ROLE_ADMIN, ROLE_COACH, ROLE_STAFF, ROLE_STUDENT
from .services import activity_service, inventory_service, leaderboard_service, products_service, scoring_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables. Safe to run repeatedly."""
    db.create_all()
    click.echo("PASS Schema ready.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create a small demo competition. Skips if any team already exists."""
    db.create_all()
    if db.session.query(Team).first() is not None:
        click.echo("WARN Teams already exist, skipping seed.")
        return

    red = Team(name="Red", team_code="RED")
    blue = Team(name="Blue", team_code="BLUE")
    db.session.add_all([red, blue])
    db.session.flush()

    admin = User(name="Admin", email="admin@rally.local", role=ROLE_ADMIN)
    staff = User(name="Staff", email="staff@rally.local", role=ROLE_STAFF)
    coach = User(name="Coach", email="coach@rally.local", role=ROLE_COACH, team_id=red.id)
    db.session.add_all([admin, staff, coach])
    db.session.flush()
    red.coach_id = coach.id

    for name, team in (("Ada", red), ("Grace", red), ("Linus", blue)):
        db.session.add(User(name=name, email=f"{name.lower()}@rally.local", role=ROLE_STUDENT, team_id=team.id))
    db.session.commit()

    activity_service.create_activity(
        {"title": "Car wash", "points": 30, "is_published": True, "allow_photo_upload": True},
        created_by_id=staff.id,
    )
    products_service.create_product(
        {"name": "Hoodie", "price_cents": 4000, "points": 50},
        sizes={"S": 5, "M": 10, "L": 10},
    )
    products_service.create_product(
        {"name": "Gala Ticket", "type": "TICKET", "price_cents": 2500, "points": 20},
        sizes={"ONESIZE": 100},
    )

    click.echo("PASS Demo data created:")
    for user in db.session.query(User).order_by(User.id).all():
        click.echo(f"   {user.id:<4} {user.role:<8} {user.email}")


@click.group('teams')
def teams_group():
    """Team inspection and bootstrap commands."""


@teams_group.command('list')
@with_appcontext
def list_teams():
    """List all teams with their live scores."""
    teams = db.session.query(Team).order_by(Team.id).all()
    if not teams:
        click.echo("No teams found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Name':<25} {'Code':<12} {'Active':<8} {'Score'}")
    click.echo("=" * 70)
    for team in teams:
        click.echo(
            f"{team.id:<5} {team.name:<25} {team.team_code:<12} {str(team.is_active):<8} "
            f"{scoring_service.team_score(team.id)}"
        )
    click.echo("")


@teams_group.command('create')
@click.option('--name', required=True)
@click.option('--code', 'team_code', required=True)
@with_appcontext
def create_team(name, team_code):
    """Create a team."""
    if db.session.query(Team).filter((Team.name == name) | (Team.team_code == team_code)).first():
        click.echo("FAIL A team with that name or code already exists.")
        return
    team = Team(name=name, team_code=team_code.upper())
    db.session.add(team)
    db.session.commit()
    click.echo(f"PASS Created team {team.name} (ID: {team.id})")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--name', required=True)
@click.option('--email', required=True)
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), default=ROLE_STUDENT)
@click.option('--team-id', type=int, default=None)
@with_appcontext
def create_user(name, email, role, team_id):
    """Create a user record (credentials live with the identity provider)."""
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        click.echo(f"FAIL User with email {email} already exists.")
        return
    if team_id is not None and db.session.get(Team, team_id) is None:
        click.echo(f"FAIL Team {team_id} not found.")
        return
    user = User(name=name, email=email, role=role.upper(), team_id=team_id)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role {user.role})")


@click.group('leaderboard')
def leaderboard_group():
    """Leaderboard inspection and publishing."""


@leaderboard_group.command('show')
@with_appcontext
def show_leaderboard():
    entries = scoring_service.compute_leaderboard()
    if not entries:
        click.echo("No active teams.")
        return
    click.echo(f"{'Rank':<6} {'Team':<25} {'Score':>8} {'Donations':>12} {'Members':>8}")
    for entry in entries:
        click.echo(
            f"{entry['rank']:<6} {entry['name']:<25} {entry['total_score']:>8} "
            f"{entry['donation_total_cents'] / 100:>12.2f} {entry['member_count']:>8}"
        )


@leaderboard_group.command('publish')
@with_appcontext
def publish_leaderboard():
    """Push the current ranking to subscribed clients."""
    ranking = leaderboard_service.publish("cli.publish")
    if ranking is None:
        click.echo("WARN Leaderboard was not published (disabled or failed; see logs).")
    else:
        click.echo(f"PASS Published leaderboard for {len(ranking)} teams.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection and adjustment."""


@inventory_group.command('show')
@click.option('--product-id', type=int, default=None, help='Limit to one product')
@with_appcontext
def show_inventory(product_id):
    try:
        items = [inventory_service.get_inventory(product_id)] if product_id else [
            {"product": item, "lines": item["inventory"]} for item in inventory_service.list_inventory()
        ]
    except RallyError as e:
        click.echo(f"FAIL {e}")
        return

    for item in items:
        product = item["product"]
        click.echo(f"\n{product['id']:<5} {product['name']} ({product['type']})")
        for line in item["lines"]:
            click.echo(f"      {line['size']:<10} {line['quantity']:>6}")


@inventory_group.command('set')
@click.option('--product-id', type=int, required=True)
@click.option('--size', required=True)
@click.option('--quantity', type=int, required=True)
@with_appcontext
def set_inventory(product_id, size, quantity):
    """Set one line to an absolute on-hand quantity."""
    try:
        line = inventory_service.set_quantity(product_id, size, quantity)
    except RallyError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS product {line.product_id} size {line.size} now {line.quantity}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(teams_group)
    app.cli.add_command(users_group)
    app.cli.add_command(leaderboard_group)
    app.cli.add_command(inventory_group)
