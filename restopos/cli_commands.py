"""
Flask CLI commands for database and inventory housekeeping.

Commands:
- flask init-db: Create all tables
- flask low-stock: List stock-tracked products at or below their minimum
"""

import click
from restopos import database


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first (destroys data)')
    def init_db_command(drop):
        """Create the database schema."""
        if drop:
            click.confirm('This will delete every order, table and stock record. Continue?', abort=True)
            database.drop_all()
            click.echo(click.style('Dropped existing tables.', fg='yellow'))

        database.create_all()
        click.echo(click.style('Database tables created.', fg='green', bold=True))

    @app.cli.command('low-stock')
    def low_stock_command():
        """Print products whose stock is at or below the minimum."""
        from restopos.services.stock_ledger import get_low_stock

        stocks = get_low_stock(database.get_session())
        if not stocks:
            click.echo(click.style('No low-stock products.', fg='green'))
            return

        click.echo(click.style(f'{len(stocks)} product(s) low on stock:', fg='red', bold=True))
        for stock in stocks:
            click.echo(f'   {stock.product.name}: {stock.quantity} (min {stock.min_stock})')
