"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _default_data_dir():
    """Per-user application data folder (where the desktop shell keeps database.db)."""
    base = os.getenv('APPDATA') or os.path.join(os.path.expanduser('~'), '.local', 'share')
    return os.path.join(base, 'admin-edificios')


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    ENV = os.getenv('FLASK_ENV', 'production')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # CSRF (the desktop shell fetches the token from /api/csrf-token)
    WTF_CSRF_ENABLED = os.getenv('WTF_CSRF_ENABLED', 'true').lower() == 'true'

    # Database - local SQLite file unless DATABASE_URL points elsewhere
    APP_DATA_DIR = os.getenv('APP_DATA_DIR') or _default_data_dir()
    DATABASE_PATH = os.getenv('DATABASE_PATH') or os.path.join(APP_DATA_DIR, 'database.db')
    DATABASE_URL = os.getenv('DATABASE_URL') or f"sqlite:///{DATABASE_PATH}"

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Cuenta corriente: record leftover of a payment receipt as saldo a favor
    TRACK_OVERPAYMENT = os.getenv('TRACK_OVERPAYMENT', 'false').lower() == 'true'

    # Reports
    REPORT_FOOTER_DEFAULT = os.getenv('REPORT_FOOTER_DEFAULT', 'Sistema de Administración de Edificios')
    BUILDING_NAME = os.getenv('BUILDING_NAME', 'Edificio')

    # Object Storage Configuration (attachments for egresos)
    # Compatible with AWS S3, DigitalOcean Spaces, MinIO, Supabase S3 gateway
    S3_ENDPOINT = os.getenv('S3_ENDPOINT', 'http://localhost:9000')
    S3_ACCESS_KEY = os.getenv('S3_ACCESS_KEY', 'minioadmin')
    S3_SECRET_KEY = os.getenv('S3_SECRET_KEY', 'minioadmin')
    S3_BUCKET = os.getenv('S3_BUCKET', 'archivos')
    S3_REGION = os.getenv('S3_REGION', 'us-east-1')
    S3_PUBLIC_URL = os.getenv('S3_PUBLIC_URL', 'http://localhost:9000')

    # Upload constraints
    MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 10 * 1024 * 1024))  # 10MB
    ALLOWED_MIME_TYPES = {
        'image/jpeg',
        'image/png',
        'image/webp',
        'application/pdf'
    }

    # Backups
    BACKUP_FOLDER_NAME = os.getenv('BACKUP_FOLDER_NAME', 'Admin Edificios Backups')

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestingConfig(Config):
    """Configuration used by the test suite (in-memory SQLite, no CSRF)."""

    TESTING = True
    ENV = 'testing'
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    S3_ENDPOINT = 'http://s3.test'
    S3_PUBLIC_URL = 'http://s3.test'
    S3_BUCKET = 'archivos'
    SENTRY_DSN = None
    TRACK_OVERPAYMENT = False
    REPORT_FOOTER_DEFAULT = 'Sistema de Administración de Edificios'
    BUILDING_NAME = 'Edificio Test'
