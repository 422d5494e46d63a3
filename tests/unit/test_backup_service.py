"""Tests for database backups and Google Drive detection."""
import os
import re
from datetime import datetime

import pytest

from admin_edificios.exceptions import BusinessLogicError, NotFoundError
from admin_edificios.services import backup_service


@pytest.fixture
def database_file(app, tmp_path):
    path = tmp_path / 'database.db'
    path.write_bytes(b'SQLite format 3\x00 contenido')
    app.config['DATABASE_PATH'] = str(path)
    return path


class TestCreateBackup:
    def test_filename_format(self):
        name = backup_service.backup_filename(datetime(2026, 1, 12, 10, 30, 5, 123000))
        assert name == 'backup_2026-01-12T10-30-05-123Z.db'

    def test_copies_database(self, database_file, tmp_path):
        target = tmp_path / 'destino'
        target.mkdir()

        result = backup_service.create_backup(str(target))

        assert os.path.dirname(result['file_path']) == str(target)
        assert re.match(r'backup_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z\.db', os.path.basename(result['file_path']))
        with open(result['file_path'], 'rb') as copy:
            assert copy.read() == database_file.read_bytes()

    def test_missing_database(self, app, tmp_path):
        app.config['DATABASE_PATH'] = str(tmp_path / 'no-existe.db')
        with pytest.raises(NotFoundError, match="No se encontró la base de datos"):
            backup_service.create_backup(str(tmp_path))

    def test_backup_to_missing_path(self, database_file, tmp_path):
        missing = str(tmp_path / 'nada')
        with pytest.raises(BusinessLogicError, match="La ruta no existe"):
            backup_service.backup_to_path(missing)


class TestGoogleDrive:
    def test_macos_cloud_storage(self, tmp_path):
        drive = tmp_path / 'Library' / 'CloudStorage' / 'GoogleDrive-ana@gmail.com' / 'Mi unidad'
        drive.mkdir(parents=True)

        assert backup_service.detect_google_drive('Darwin', str(tmp_path)) == str(drive)

    def test_windows_home_folder(self, tmp_path):
        drive = tmp_path / 'Google Drive'
        drive.mkdir()

        assert backup_service.detect_google_drive('Windows', str(tmp_path)) == str(drive)

    def test_not_detected(self, tmp_path):
        assert backup_service.detect_google_drive('Linux', str(tmp_path)) is None

    def test_backup_to_drive_without_drive(self, app, tmp_path):
        with pytest.raises(BusinessLogicError, match="Google Drive Desktop no detectado"):
            backup_service.backup_to_drive('Linux', str(tmp_path))

    def test_backup_to_drive_creates_folder(self, database_file, tmp_path):
        home = tmp_path / 'home'
        (home / 'Library' / 'CloudStorage' / 'GoogleDrive-x' / 'My Drive').mkdir(parents=True)

        result = backup_service.backup_to_drive('Darwin', str(home))

        assert 'Admin Edificios Backups' in result['file_path']
        assert os.path.exists(result['file_path'])

    def test_diagnostics_lists_checked_paths(self, tmp_path):
        results = backup_service.get_diagnostics('Windows', str(tmp_path))

        paths = [r['path'] for r in results]
        assert 'G:\\Mi unidad' in paths
        assert os.path.join(str(tmp_path), 'GoogleDrive', 'My Drive') in paths
        assert all(r['exists'] is False for r in results)


class TestListBackups:
    def test_newest_first_and_filtered(self, tmp_path):
        for name in (
            'backup_2026-01-10T08-00-00-000Z.db',
            'backup_2026-03-01T08-00-00-000Z.db',
            'backup_2025-12-31T23-59-59-000Z.db',
            'notas.txt',
        ):
            (tmp_path / name).write_bytes(b'x')

        names = [b['name'] for b in backup_service.list_backups(str(tmp_path))]

        assert names == [
            'backup_2026-03-01T08-00-00-000Z.db',
            'backup_2026-01-10T08-00-00-000Z.db',
            'backup_2025-12-31T23-59-59-000Z.db',
        ]

    def test_missing_folder(self, tmp_path):
        assert backup_service.list_backups(str(tmp_path / 'nada')) == []
