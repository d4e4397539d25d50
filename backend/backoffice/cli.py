# Overview: Flask CLI command groups for bootstrap, inspection, and reference data.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "backoffice:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Company management (MULTI-TENANT):
# - python -m flask companies list
#   List all companies with their owner and user count.
# - python -m flask companies register --name "Acme" --owner-name "Alice" --owner-email alice@acme.com --password secret1
#   Bootstrap a company and its owner (same path as POST /api/auth/register).
#
# User inspection:
# - python -m flask users list --company-id 1
#   List a company's users and their permission flags.
#
# Reference data:
# - python -m flask categories create --name "Shoes" [--parent-id 3]
# - python -m flask customers create --name "Jane Doe" --region "EU"

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, User, Customer
from .services.auth_service import register_company
from .services.catalog_service import create_category
from .services.tenant_service import InfrastructureError
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = db.session.query(Company).order_by(Company.id.asc()).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Owner':<35} {'Users'}")
    click.echo("="*80)

    for company in companies:
        user_count = db.session.query(User).filter_by(company_id=company.id).count()
        owner_email = company.owner.email if company.owner is not None else "-"
        click.echo(f"{company.id:<5} {company.name:<30} {owner_email:<35} {user_count}")

    click.echo("="*80 + "\n")


@companies_group.command('register')
@click.option('--name', required=True, help='Company name')
@click.option('--owner-name', required=True, help='Owner display name')
@click.option('--owner-email', required=True, help='Owner email (login)')
@click.option('--password', required=True, help='Owner password')
@with_appcontext
def register_company_command(name, owner_name, owner_email, password):
    """Bootstrap a company and its owner user in one transaction."""
    try:
        company, owner = register_company(
            company_name=name,
            owner_name=owner_name,
            owner_email=owner_email,
            owner_password=password,
        )
    except (ValidationError, ConflictError, InfrastructureError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created company {company.name} (ID: {company.id}) owned by {owner.email} (ID: {owner.id})")


@click.group('users')
def users_group():
    """User inspection commands."""


@users_group.command('list')
@click.option('--company-id', type=int, required=True, help='Company ID')
@with_appcontext
def list_users(company_id):
    """List a company's users and permission flags."""
    company = db.session.get(Company, company_id)
    if company is None:
        raise click.ClickException(f"Company {company_id} not found")

    users = db.session.query(User).filter_by(company_id=company_id).order_by(User.id.asc()).all()

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Products':<9} {'Inventory':<10} {'Users':<6} {'Owner'}")
    click.echo("="*80)

    for user in users:
        flags = user.permission_flags()
        click.echo(
            f"{user.id:<5} {user.email:<35} "
            f"{'Yes' if flags['manage_products'] else 'No':<9} "
            f"{'Yes' if flags['manage_inventory'] else 'No':<10} "
            f"{'Yes' if flags['manage_users'] else 'No':<6} "
            f"{'Yes' if company.owner_id == user.id else ''}"
        )

    click.echo("="*80 + "\n")


@click.group('categories')
def categories_group():
    """Category reference data commands."""


@categories_group.command('create')
@click.option('--name', required=True, help='Category name')
@click.option('--parent-id', type=int, default=None, help='Parent category ID')
@with_appcontext
def create_category_command(name, parent_id):
    """Create a (global) category."""
    try:
        category = create_category(name=name.strip(), parent_id=parent_id)
    except (ValidationError, InfrastructureError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created category {category.name} (ID: {category.id})")


@click.group('customers')
def customers_group():
    """Customer reference data commands."""


@customers_group.command('create')
@click.option('--name', required=True, help='Customer name')
@click.option('--region', default=None, help='Customer region')
@with_appcontext
def create_customer(name, region):
    """Create a customer (orders and reviews reference customers)."""
    customer = Customer(name=name.strip(), region=region)
    db.session.add(customer)
    db.session.commit()
    click.echo(f"PASS Created customer {customer.name} (ID: {customer.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(companies_group)  # Multi-tenant company management
    app.cli.add_command(users_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(customers_group)
