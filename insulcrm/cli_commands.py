"""
Flask CLI commands for database setup.

Commands:
- flask init-db: Create all tables
- flask seed-catalog: Insert application types and a starter product catalog
"""

import click
from decimal import Decimal
from insulcrm.database import create_schema, get_session
from insulcrm.models import ApplicationType, Product


APPLICATION_TYPES = [
    # (code, name, color_hex)
    ('CEILING', 'Ceiling', '#e3f2fd'),
    ('UNDERFLOOR', 'Underfloor', '#fff3e0'),
    ('EXT_WALL', 'External Walls', '#e8f5e9'),
    ('INT_WALL', 'Internal Walls', '#f3e5f5'),
    ('SKILLION', 'Skillion Roof', '#fce4ec'),
]

STARTER_PRODUCTS = [
    # (sku, description, r_value, application_type, bale_size_sqm, cost_price, pack_price)
    ('GW-R3.2-CEIL', 'Premier Glasswool R3.2 Ceiling Batts', 'R3.2', 'Ceiling', '8.6', '38.50', '61.60'),
    ('GW-R4.0-CEIL', 'Premier Glasswool R4.0 Ceiling Batts', 'R4.0', 'Ceiling', '6.5', '42.00', '67.20'),
    ('GW-R2.4-90', 'Premier Glasswool 90mm R2.4', 'R2.4', 'External Walls', '7.2', '32.00', '51.20'),
    ('GW-R2.6-90', 'Premier Glasswool 90mm R2.6 High Density', 'R2.6', 'External Walls', '6.4', '36.00', '57.60'),
    ('PE-R1.8-UF', 'Polyester Underfloor Blanket R1.8', 'R1.8', 'Underfloor', '10.0', '45.00', '72.00'),
    ('GW-R2.2-SK', 'Skillion Roof Batts R2.2', 'R2.2', 'Skillion Roof', '5.8', '34.00', '54.40'),
    ('AC-R2.0-IW', 'Acoustic Internal Wall Batts R2.0', 'R2.0', 'Internal Walls', '7.0', '40.00', '64.00'),
]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_schema()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-catalog')
    def seed_catalog():
        """Insert application types and starter products (skips existing codes/SKUs)."""
        db_session = get_session()

        try:
            created_types = 0
            for sort_order, (code, name, color) in enumerate(APPLICATION_TYPES):
                if db_session.query(ApplicationType).filter_by(code=code).first():
                    continue
                db_session.add(ApplicationType(code=code, name=name, color_hex=color, sort_order=sort_order))
                created_types += 1

            created_products = 0
            for sku, description, r_value, app_type, size, cost, pack in STARTER_PRODUCTS:
                if db_session.query(Product).filter_by(sku=sku).first():
                    continue
                db_session.add(Product(
                    sku=sku,
                    product_description=description,
                    category='Insulation',
                    r_value=r_value,
                    application_type=app_type,
                    bale_size_sqm=Decimal(size),
                    cost_price=Decimal(cost),
                    retail_price=Decimal(pack),
                    pack_price=Decimal(pack),
                    waste_percentage=Decimal('0'),
                ))
                created_products += 1

            db_session.commit()
            click.echo(click.style(
                f'Seeded {created_types} application types and {created_products} products.',
                fg='green'
            ))

        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Seeding failed: {e}', fg='red'))
            raise click.Abort()
