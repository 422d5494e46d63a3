"""
Object storage for expense attachments (comprobantes de egresos).

S3-compatible (MinIO, AWS S3, DigitalOcean Spaces, Supabase S3 gateway).
Files are stored under `egresos/<timestamp>-<random>.<ext>` and exposed
through their public URL, which is saved on the bank movement.
"""
import logging
import mimetypes
import secrets
import string
import time
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.datastructures import FileStorage

from admin_edificios.exceptions import ValidationError, StoreError

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = 'egresos'
_ALPHABET = string.ascii_lowercase + string.digits


def build_object_name(filename: str, now_ms: Optional[int] = None) -> str:
    """egresos/1700000000000-k3j9x2.pdf"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = ''.join(secrets.choice(_ALPHABET) for _ in range(6))
    extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
    return f"{UPLOAD_PREFIX}/{now_ms}-{suffix}.{extension}"


class StorageService:
    """
    S3-compatible object storage service.

    Usage:
        storage = get_storage_service()
        url = storage.upload_attachment(request.files['file'])
    """

    def __init__(self, client=None):
        self.endpoint = current_app.config['S3_ENDPOINT']
        self.bucket = current_app.config['S3_BUCKET']
        self.public_url = current_app.config['S3_PUBLIC_URL']
        self.max_size = current_app.config.get('MAX_UPLOAD_SIZE', 10 * 1024 * 1024)
        self.allowed_types = current_app.config.get('ALLOWED_MIME_TYPES', set())

        self.client = client or boto3.client(
            's3',
            endpoint_url=self.endpoint,
            aws_access_key_id=current_app.config['S3_ACCESS_KEY'],
            aws_secret_access_key=current_app.config['S3_SECRET_KEY'],
            region_name=current_app.config['S3_REGION'],
            config=BotoConfig(signature_version='s3v4')
        )
        self._ensure_bucket_exists()

    def _ensure_bucket_exists(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.debug(f"[STORAGE] Bucket '{self.bucket}' OK")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code != '404':
                logger.error(f"[STORAGE] ✗ No se pudo verificar el bucket: {e}")
                raise
            self.client.create_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] ✓ Bucket '{self.bucket}' creado")

    def upload_attachment(self, file: FileStorage) -> str:
        """
        Upload an expense attachment.

        Returns:
            Public URL of the uploaded file

        Raises:
            ValidationError: missing file, too large or type not allowed
            StoreError: upload failed
        """
        self._validate_file(file)

        object_name = build_object_name(file.filename)
        content_type = file.content_type or mimetypes.guess_type(file.filename)[0] or 'application/octet-stream'

        try:
            file.seek(0)
            logger.info(f"[STORAGE] Subiendo comprobante {file.filename} como {object_name}")
            self.client.upload_fileobj(
                file.stream,
                self.bucket,
                object_name,
                ExtraArgs={'ContentType': content_type, 'ACL': 'public-read'}
            )
        except (ClientError, BotoCoreError) as e:
            logger.exception(f"[STORAGE] ✗ Falló la subida de {object_name}: {e}")
            raise StoreError(f"Error al subir archivo: {e}") from e

        url = self.get_public_url(object_name)
        logger.info(f"[STORAGE] ✓ Comprobante subido: {url}")
        return url

    def delete_file(self, object_name: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_name)
            logger.info(f"[STORAGE] ✓ Eliminado: {object_name}")
            return True
        except ClientError as e:
            logger.exception(f"[STORAGE] ✗ No se pudo eliminar {object_name}: {e}")
            return False

    def get_public_url(self, object_name: str) -> str:
        return f"{self.public_url}/{self.bucket}/{object_name}"

    def object_name_from_url(self, url: str) -> Optional[str]:
        """Inverse of get_public_url; None for URLs outside this bucket."""
        prefix = f"{self.public_url}/{self.bucket}/"
        if url and url.startswith(prefix):
            return url[len(prefix):]
        return None

    def _validate_file(self, file: FileStorage):
        if not file or not file.filename:
            raise ValidationError("No se proporcionó ningún archivo")

        file.seek(0, 2)
        file_size = file.tell()
        file.seek(0)

        if file_size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationError(f"El archivo es demasiado grande. Máximo {max_mb:.1f}MB")

        content_type = file.content_type
        if self.allowed_types and content_type not in self.allowed_types:
            allowed = ', '.join(sorted(self.allowed_types))
            raise ValidationError(f"Tipo de archivo no permitido: {content_type}. Permitidos: {allowed}")

        logger.debug(f"[STORAGE] Archivo válido: {file.filename} ({file_size} bytes, {content_type})")


# Singleton instance
_storage_service = None


def get_storage_service() -> StorageService:
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service


def reset_storage_service():
    """Drop the cached client (tests, config changes)."""
    global _storage_service
    _storage_service = None
