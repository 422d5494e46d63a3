"""
Flask CLI commands for building administration.

Commands:
- flask init-db: Create missing tables
- flask generate-monthly-charges: Gastos comunes / fondo de reserva of the month
- flask backup-db: Copy the database to Google Drive or a folder
"""
from datetime import datetime

import click

from admin_edificios.database import create_schema, get_session
from admin_edificios.exceptions import AppError
from admin_edificios.services import backup_service, transaction_service


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_schema()
        click.echo(click.style('✅ Base de datos inicializada', fg='green'))

    @app.cli.command('generate-monthly-charges')
    @click.option('--month', type=click.IntRange(1, 12), default=None, help='Mes (1-12), por defecto el actual')
    @click.option('--year', type=int, default=None, help='Año, por defecto el actual')
    def generate_monthly_charges(month, year):
        """Create the month's credit sales for every apartment."""
        now = datetime.now()
        reference_date = now
        if month or year:
            reference_date = datetime(year or now.year, month or now.month, 1, now.hour, now.minute)

        try:
            result = transaction_service.generate_monthly_charges(get_session(), reference_date)
        except AppError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style(
            f"✅ Se generaron {result['created']} transacciones para {result['month']}",
            fg='green'
        ))

    @app.cli.command('backup-db')
    @click.option('--path', 'path', default=None, help='Carpeta destino (por defecto Google Drive)')
    def backup_db(path):
        """Create a backup_<timestamp>.db copy of the database."""
        try:
            if path:
                result = backup_service.backup_to_path(path)
            else:
                result = backup_service.backup_to_drive()
        except AppError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style(f"✅ Respaldo creado: {result['file_path']}", fg='green'))
        click.echo(f"   Fecha: {result['timestamp']}")
