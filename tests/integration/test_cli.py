"""Tests for the flask CLI commands."""
from admin_edificios.models import Transaction


def test_generate_monthly_charges(app, session, apartment):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['generate-monthly-charges', '--month', '3', '--year', '2026'])

    assert result.exit_code == 0
    assert 'Se generaron 2 transacciones para marzo de 2026' in result.output
    assert session.query(Transaction).count() == 2


def test_generate_monthly_charges_without_apartments(app):
    result = app.test_cli_runner().invoke(args=['generate-monthly-charges'])

    assert result.exit_code == 1
    assert 'No hay apartamentos registrados' in result.output


def test_backup_db_to_missing_path(app, tmp_path):
    result = app.test_cli_runner().invoke(args=['backup-db', '--path', str(tmp_path / 'nope')])

    assert result.exit_code == 1
    assert 'La ruta no existe' in result.output


def test_backup_db_to_path(app, tmp_path):
    database_file = tmp_path / 'database.db'
    database_file.write_bytes(b'SQLite format 3\x00')
    app.config['DATABASE_PATH'] = str(database_file)
    target = tmp_path / 'respaldos'
    target.mkdir()

    result = app.test_cli_runner().invoke(args=['backup-db', '--path', str(target)])

    assert result.exit_code == 0
    assert len(list(target.glob('backup_*.db'))) == 1
