"""
Database backups (respaldos).

Copies the SQLite database file to a Google Drive Desktop folder or to a
user-provided path as `backup_<timestamp>.db`.
"""
import glob
import logging
import os
import platform
import re
import shutil
from datetime import datetime, timezone
from typing import List, Optional

from flask import current_app

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = 'Admin Edificios Backups'
DRIVE_LETTERS = ['G', 'H', 'D', 'E', 'F', 'I', 'J', 'K', 'L']
DRIVE_NAMES = ['Mi unidad', 'My Drive']
HOME_DRIVE_PATHS = [
    os.path.join('Google Drive', 'Mi unidad'),
    os.path.join('Google Drive', 'My Drive'),
    'Google Drive',
    os.path.join('GoogleDrive', 'Mi unidad'),
    os.path.join('GoogleDrive', 'My Drive'),
]
BACKUP_NAME_RE = re.compile(r'^backup_(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})')


def get_database_path() -> str:
    return current_app.config['DATABASE_PATH']


def backup_filename(now: Optional[datetime] = None) -> str:
    """backup_2026-01-12T10-30-00-000Z.db"""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"
    return f"backup_{stamp.replace(':', '-').replace('.', '-')}.db"


def create_backup(destination: str, database_path: Optional[str] = None) -> dict:
    """
    Copy the database file into `destination`.

    Returns:
        dict with file_path and timestamp

    Raises:
        NotFoundError: database file missing
        StoreError: copy failed
    """
    database_path = database_path or get_database_path()
    if not os.path.exists(database_path):
        raise NotFoundError("No se encontró la base de datos")

    now = datetime.now(timezone.utc)
    target = os.path.join(destination, backup_filename(now))
    try:
        shutil.copy2(database_path, target)
    except OSError as e:
        logger.exception(f"[BACKUP] ✗ Falló la copia: {e}")
        raise StoreError(f"Error al crear el respaldo: {e}") from e

    logger.info(f"[BACKUP] ✓ {target}")
    return {'file_path': target, 'timestamp': now.strftime('%d/%m/%Y %H:%M:%S')}


def _windows_candidates(home: str) -> List[str]:
    candidates = []
    for letter in DRIVE_LETTERS:
        for name in DRIVE_NAMES:
            candidates.append(f"{letter}:\\{name}")
    candidates.extend(os.path.join(home, path) for path in HOME_DRIVE_PATHS)
    return candidates


def _looks_like_drive_root(path: str) -> bool:
    return os.path.exists(os.path.join(path, '.shortcut-targets-by-id'))


def detect_google_drive(system: Optional[str] = None, home: Optional[str] = None) -> Optional[str]:
    """
    Locate the Google Drive Desktop folder.

    Windows: virtual drive letters ("G:\\Mi unidad", "G:\\My Drive" or a
    drive root that holds Drive metadata) then the legacy home folders.
    macOS: ~/Library/CloudStorage/GoogleDrive-*/Mi unidad.
    """
    system = system or platform.system()
    home = home or os.path.expanduser('~')

    if system == 'Windows':
        for letter in DRIVE_LETTERS:
            root = f"{letter}:\\"
            for name in DRIVE_NAMES:
                variant = root + name
                if os.path.exists(variant):
                    return variant
            if os.path.exists(root) and _looks_like_drive_root(root):
                return root
        for path in HOME_DRIVE_PATHS:
            full_path = os.path.join(home, path)
            if os.path.exists(full_path):
                return full_path

    if system == 'Darwin':
        cloud_storage = os.path.join(home, 'Library', 'CloudStorage')
        for entry in sorted(glob.glob(os.path.join(cloud_storage, 'GoogleDrive-*'))):
            for name in DRIVE_NAMES:
                drive_path = os.path.join(entry, name)
                if os.path.isdir(drive_path):
                    return drive_path

    return None


def get_drive_backup_folder(system: Optional[str] = None, home: Optional[str] = None) -> Optional[str]:
    drive_path = detect_google_drive(system, home)
    if not drive_path:
        return None
    folder = os.path.join(drive_path, current_app.config.get('BACKUP_FOLDER_NAME', DEFAULT_FOLDER_NAME))
    os.makedirs(folder, exist_ok=True)
    return folder


def get_drive_status(system: Optional[str] = None, home: Optional[str] = None) -> dict:
    drive_path = detect_google_drive(system, home)
    if not drive_path:
        return {'detected': False}
    return {
        'detected': True,
        'path': drive_path,
        'backup_folder': get_drive_backup_folder(system, home),
    }


def get_diagnostics(system: Optional[str] = None, home: Optional[str] = None) -> List[dict]:
    """Paths checked while looking for Google Drive and whether they exist."""
    system = system or platform.system()
    home = home or os.path.expanduser('~')

    paths = []
    if system == 'Windows':
        paths = _windows_candidates(home)
    elif system == 'Darwin':
        paths = [os.path.join(home, 'Library', 'CloudStorage')]

    return [{'path': path, 'exists': os.path.exists(path)} for path in paths]


def backup_to_drive(system: Optional[str] = None, home: Optional[str] = None) -> dict:
    folder = get_drive_backup_folder(system, home)
    if not folder:
        raise BusinessLogicError("Google Drive Desktop no detectado. Instálalo y vuelve a intentar.")
    return create_backup(folder)


def backup_to_path(path: str) -> dict:
    if not path or not os.path.isdir(path):
        raise BusinessLogicError(f"La ruta no existe: {path}")
    return create_backup(path)


def _parse_backup_date(name: str, fallback: datetime) -> datetime:
    match = BACKUP_NAME_RE.match(name)
    if not match:
        return fallback
    try:
        return datetime.strptime(match.group(1), '%Y-%m-%dT%H-%M-%S')
    except ValueError:
        return fallback


def list_backups(folder: str) -> List[dict]:
    """backup_*.db files of a folder, newest first."""
    if not folder or not os.path.isdir(folder):
        return []

    backups = []
    for name in os.listdir(folder):
        if not (name.startswith('backup_') and name.endswith('.db')):
            continue
        full_path = os.path.join(folder, name)
        modified = datetime.fromtimestamp(os.path.getmtime(full_path), timezone.utc).replace(tzinfo=None)
        backups.append({
            'name': name,
            'path': full_path,
            'date': _parse_backup_date(name, modified),
            'size': os.path.getsize(full_path),
        })

    backups.sort(key=lambda item: item['date'], reverse=True)
    return backups
